from typing import List, Union
from pydantic import AnyHttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "HealWise"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Database
    DATABASE_URL: str = "sqlite:///./healwise.db"

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Scheduling policy
    WORKDAY_START_HOUR: int = 9
    WORKDAY_END_HOUR: int = 17
    CANCELLATION_WINDOW_HOURS: int = 2

    @model_validator(mode='after')
    def check_scheduling_policy(self) -> 'Settings':
        if not 0 <= self.WORKDAY_START_HOUR < self.WORKDAY_END_HOUR <= 24:
            raise ValueError("WORKDAY_START_HOUR must be before WORKDAY_END_HOUR")
        if self.CANCELLATION_WINDOW_HOURS < 0:
            raise ValueError("CANCELLATION_WINDOW_HOURS must not be negative")
        return self

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra='ignore')

settings = Settings()
