import os
from dotenv import load_dotenv

load_dotenv()

REPORT_STATUSES = ["Pending", "In Progress", "Resolved", "Rejected"]


def _split(value):
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    def __init__(self, **overrides):
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./ecobhandu.db")
        self.secret_key = os.getenv("SECRET_KEY", "ecobhandu-dev-secret-change-me")
        self.access_token_expire_minutes = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))
        self.allowed_origins = _split(os.getenv("ALLOWED_ORIGINS", "*"))
        # Statuses reachable through PATCH /reports/{id}/status. Drop "Resolved"
        # to route every resolution through the resolve endpoint.
        self.generic_status_targets = _split(
            os.getenv("GENERIC_STATUS_TARGETS", ",".join(REPORT_STATUSES))
        )
        self.default_list_limit = int(os.getenv("DEFAULT_LIST_LIMIT", 50))
        self.max_list_limit = int(os.getenv("MAX_LIST_LIMIT", 500))
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"Unknown setting: {key}")
            setattr(self, key, value)

        unknown = set(self.generic_status_targets) - set(REPORT_STATUSES)
        if unknown:
            raise ValueError(f"GENERIC_STATUS_TARGETS has unknown statuses: {sorted(unknown)}")
