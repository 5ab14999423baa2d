import os
from decimal import Decimal
from typing import List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class Settings:
    def __init__(self):
        self.database_url: str = os.getenv("DATABASE_URL", "sqlite:///./tournaments.db")
        self.debug: bool = os.getenv("DEBUG", "False").lower() == "true"
        self.run_migrations: bool = os.getenv("RUN_MIGRATIONS", "True").lower() == "true"
        self.cors_origins: List[str] = [
            "http://localhost:3000",
            "http://localhost:5000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]

        # Every lock wait / connection attempt is bounded; callers retry with the same idempotency key
        self.db_timeout_seconds: int = int(os.getenv("DB_TIMEOUT_SECONDS", 10))

        # JWT (sessions are issued elsewhere, we only verify them)
        self.jwt_secret_key: str = os.getenv("JWT_SECRET_KEY", "fallback-secret")
        self.jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
        self.jwt_expire_minutes: int = int(os.getenv("JWT_EXPIRE_MINUTES", 60 * 24 * 3))  # 3 days by default

        # Wallet / referrals
        self.referral_bonus_amount: Decimal = Decimal(os.getenv("REFERRAL_BONUS_AMOUNT", "50.00"))
        self.referral_bonus_coins: int = int(os.getenv("REFERRAL_BONUS_COINS", 100))

        # Teams
        self.team_max_members: int = int(os.getenv("TEAM_MAX_MEMBERS", 6))
        self.join_code_length: int = int(os.getenv("JOIN_CODE_LENGTH", 8))
        self.code_issue_attempts: int = int(os.getenv("CODE_ISSUE_ATTEMPTS", 10))

settings = Settings()
