import os
from typing import List

from dotenv import load_dotenv
from fastapi import Request
from pydantic import BaseModel, Field, field_validator


class Settings(BaseModel):
    mongo_url: str = "mongodb://localhost:27017"
    database_name: str = "collegemate"

    jwt_access_key: str = "collegemate-dev-access-key"
    jwt_algorithm: str = "HS512"

    webpage_origin: str = "https://collegemate.app"
    application_keys: List[str] = Field(default_factory=lambda: ["<Android-App-v1>"])

    # Secret mixed into every relationship / request key
    hash_salt: str = "collegemate-dev-salt"

    user_api_base_url: str = "https://api.collegemate.app"
    server_admin_key: str = ""
    user_api_timeout: float = 10.0

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper()

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        values = {
            "mongo_url": os.getenv("MONGO_URL"),
            "database_name": os.getenv("DATABASE_NAME"),
            "jwt_access_key": os.getenv("JWT_ACCESS_KEY"),
            "jwt_algorithm": os.getenv("JWT_ALGORITHM"),
            "webpage_origin": os.getenv("WEBPAGE_ORIGIN"),
            "hash_salt": os.getenv("HASH_SALT"),
            "user_api_base_url": os.getenv("USER_API_BASE_URL"),
            "server_admin_key": os.getenv("SERVER_ADMIN_KEY"),
            "user_api_timeout": os.getenv("USER_API_TIMEOUT"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        app_keys = os.getenv("APPLICATION_KEYS")
        if app_keys:
            values["application_keys"] = [
                key.strip() for key in app_keys.split(",") if key.strip()
            ]
        return cls(**{key: value for key, value in values.items() if value is not None})


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
