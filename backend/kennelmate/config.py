"""
KennelMate Backend - Configuration Module

Purpose: Centralized configuration management using Pydantic Settings.
Loads from environment variables with validation and type checking.

Testing:
    from kennelmate.config import settings
    print(settings.STORE_BACKEND)  # dynamodb or memory

AWS Deployment Notes:
    - Set environment variables in ECS task definition or Lambda configuration
    - Never hardcode AWS credentials; use IAM roles
    - Rule constants (HEAT_*, VACCINATION_*, GESTATION_DAYS, ...) are tunable per environment
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json


class ReminderRules(BaseModel):
    """Numeric constants used by the reminder rule generators"""

    heat_default_interval_days: int = 180
    heat_window_min_days: int = -5
    heat_window_max_days: int = 30
    heat_high_priority_days: int = 7

    vaccination_interval_days: int = 365
    vaccination_window_min_days: int = -30
    vaccination_window_max_days: int = 7
    vaccination_due_soon_days: int = 7

    planned_heat_window_max_days: int = 30

    birthday_window_max_days: int = 7

    gestation_days: int = 63
    whelping_window_max_days: int = 7


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # =============================================================================
    # CORE APPLICATION
    # =============================================================================
    ENVIRONMENT: Literal["local", "development", "staging", "production"] = "local"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8080"]

    @validator("CORS_ORIGINS", pre=True)
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return json.loads(v)
        return v

    # =============================================================================
    # AWS CONFIGURATION
    # =============================================================================
    AWS_REGION: str = "us-east-1"

    # AWS credentials (only for local testing; use IAM roles in production)
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None

    # =============================================================================
    # STORAGE CONFIGURATION
    # =============================================================================
    STORE_BACKEND: Literal["dynamodb", "memory"] = "dynamodb"

    # Legacy client-side reminder data awaiting migration (one JSON file per user)
    LEGACY_STORAGE_PATH: str = "./local_data/legacy_reminders"

    # =============================================================================
    # DATABASE CONFIGURATION
    # =============================================================================
    USE_DYNAMODB_LOCAL: bool = True
    DYNAMODB_LOCAL_ENDPOINT: str = "http://localhost:8000"

    DYNAMODB_TABLE_CUSTOM_REMINDERS: str = "kennelmate-custom-reminders-local"
    DYNAMODB_TABLE_REMINDER_STATUS: str = "kennelmate-reminder-status-local"
    DYNAMODB_TABLE_MIGRATIONS: str = "kennelmate-migrations-local"

    DYNAMODB_TABLE_DOGS: str = "kennelmate-dogs-local"
    DYNAMODB_TABLE_LITTERS: str = "kennelmate-litters-local"
    DYNAMODB_TABLE_PLANNED_BREEDINGS: str = "kennelmate-planned-breedings-local"
    DYNAMODB_TABLE_PREGNANCIES: str = "kennelmate-pregnancies-local"

    DYNAMODB_BILLING_MODE: Literal["PAY_PER_REQUEST", "PROVISIONED"] = "PAY_PER_REQUEST"

    # =============================================================================
    # REMINDER RULES
    # =============================================================================
    HEAT_DEFAULT_INTERVAL_DAYS: int = 180
    HEAT_WINDOW_MIN_DAYS: int = -5
    HEAT_WINDOW_MAX_DAYS: int = 30
    HEAT_HIGH_PRIORITY_DAYS: int = 7

    VACCINATION_INTERVAL_DAYS: int = 365
    VACCINATION_WINDOW_MIN_DAYS: int = -30
    VACCINATION_WINDOW_MAX_DAYS: int = 7
    VACCINATION_DUE_SOON_DAYS: int = 7

    PLANNED_HEAT_WINDOW_MAX_DAYS: int = 30
    BIRTHDAY_WINDOW_MAX_DAYS: int = 7

    GESTATION_DAYS: int = 63
    WHELPING_WINDOW_MAX_DAYS: int = 7

    # Worker threads used to evaluate the rule generators concurrently
    GENERATOR_MAX_WORKERS: int = 6

    # =============================================================================
    # MIGRATION
    # =============================================================================
    MIGRATION_MAX_ATTEMPTS: int = 3
    MIGRATION_SESSION_CACHE_SIZE: int = 1000

    # =============================================================================
    # LOGGING & MONITORING
    # =============================================================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    # =============================================================================
    # FEATURE FLAGS
    # =============================================================================
    ENABLE_REMINDERS: bool = True
    ENABLE_MIGRATION: bool = True

    # =============================================================================
    # COMPUTED PROPERTIES
    # =============================================================================

    @property
    def dynamodb_endpoint(self) -> Optional[str]:
        """Get DynamoDB endpoint (None for AWS service, URL for local)"""
        if self.USE_DYNAMODB_LOCAL:
            return self.DYNAMODB_LOCAL_ENDPOINT
        return None

    @property
    def reminder_rules(self) -> ReminderRules:
        """Rule constants bundled for the generators"""
        return ReminderRules(
            heat_default_interval_days=self.HEAT_DEFAULT_INTERVAL_DAYS,
            heat_window_min_days=self.HEAT_WINDOW_MIN_DAYS,
            heat_window_max_days=self.HEAT_WINDOW_MAX_DAYS,
            heat_high_priority_days=self.HEAT_HIGH_PRIORITY_DAYS,
            vaccination_interval_days=self.VACCINATION_INTERVAL_DAYS,
            vaccination_window_min_days=self.VACCINATION_WINDOW_MIN_DAYS,
            vaccination_window_max_days=self.VACCINATION_WINDOW_MAX_DAYS,
            vaccination_due_soon_days=self.VACCINATION_DUE_SOON_DAYS,
            planned_heat_window_max_days=self.PLANNED_HEAT_WINDOW_MAX_DAYS,
            birthday_window_max_days=self.BIRTHDAY_WINDOW_MAX_DAYS,
            gestation_days=self.GESTATION_DAYS,
            whelping_window_max_days=self.WHELPING_WINDOW_MAX_DAYS,
        )

    def get_table_name(self, table_type: str) -> str:
        """Get DynamoDB table name by type"""
        table_map = {
            "custom_reminders": self.DYNAMODB_TABLE_CUSTOM_REMINDERS,
            "reminder_status": self.DYNAMODB_TABLE_REMINDER_STATUS,
            "migrations": self.DYNAMODB_TABLE_MIGRATIONS,
            "dogs": self.DYNAMODB_TABLE_DOGS,
            "litters": self.DYNAMODB_TABLE_LITTERS,
            "planned_breedings": self.DYNAMODB_TABLE_PLANNED_BREEDINGS,
            "pregnancies": self.DYNAMODB_TABLE_PREGNANCIES,
        }
        return table_map.get(table_type, "")


# Global settings instance
settings = Settings()


# Validation on startup
def validate_settings():
    """Validate settings that depend on each other"""
    errors = []

    if settings.HEAT_WINDOW_MIN_DAYS > settings.HEAT_WINDOW_MAX_DAYS:
        errors.append("HEAT_WINDOW_MIN_DAYS must not exceed HEAT_WINDOW_MAX_DAYS")

    if settings.VACCINATION_WINDOW_MIN_DAYS > settings.VACCINATION_WINDOW_MAX_DAYS:
        errors.append("VACCINATION_WINDOW_MIN_DAYS must not exceed VACCINATION_WINDOW_MAX_DAYS")

    if settings.HEAT_DEFAULT_INTERVAL_DAYS <= 0:
        errors.append("HEAT_DEFAULT_INTERVAL_DAYS must be positive")

    if settings.MIGRATION_MAX_ATTEMPTS < 1:
        errors.append("MIGRATION_MAX_ATTEMPTS must be at least 1")

    if settings.MIGRATION_SESSION_CACHE_SIZE < 1:
        errors.append("MIGRATION_SESSION_CACHE_SIZE must be at least 1")

    if settings.GENERATOR_MAX_WORKERS < 1:
        errors.append("GENERATOR_MAX_WORKERS must be at least 1")

    if settings.STORE_BACKEND == "dynamodb" and not settings.AWS_REGION:
        errors.append("AWS_REGION is required when STORE_BACKEND=dynamodb")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)


# Print config summary (for debugging)
def print_config_summary():
    """Print configuration summary (safe - no secrets)"""
    print("\n" + "="*60)
    print("KennelMate Configuration Summary")
    print("="*60)
    print(f"Environment: {settings.ENVIRONMENT}")
    print(f"Debug Mode: {settings.DEBUG}")
    print(f"Store Backend: {settings.STORE_BACKEND}")
    print(f"Database: {'DynamoDB Local' if settings.USE_DYNAMODB_LOCAL else 'DynamoDB AWS'}")
    print(f"Legacy Data Path: {settings.LEGACY_STORAGE_PATH}")
    print(f"Migration: {'enabled' if settings.ENABLE_MIGRATION else 'disabled'} "
          f"(max attempts {settings.MIGRATION_MAX_ATTEMPTS})")
    print("="*60 + "\n")
