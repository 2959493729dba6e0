# backend/nibso/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/nibso.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///nibso.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Business profile
    BUSINESS_NAME = os.environ.get("BUSINESS_NAME", "Nibso")
    BUSINESS_ADDRESS = os.environ.get("BUSINESS_ADDRESS", "123 Commerce Way, Lagos, Nigeria")
    CURRENCY = os.environ.get("CURRENCY", "₦")
    TAX_RATE = float(os.environ.get("TAX_RATE", "7.5"))
    BUSINESS_TYPE = os.environ.get("BUSINESS_TYPE", "General")

    # Text generation (Gemini)
    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
    GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")
    CONNECTIVITY_PROBE_HOST = os.environ.get("CONNECTIVITY_PROBE_HOST", "8.8.8.8")
    CONNECTIVITY_PROBE_PORT = int(os.environ.get("CONNECTIVITY_PROBE_PORT", "53"))
    CONNECTIVITY_PROBE_TIMEOUT = float(os.environ.get("CONNECTIVITY_PROBE_TIMEOUT", "1.5"))

    # POS rules
    NEGATIVE_STOCK_POLICY = os.environ.get("NEGATIVE_STOCK_POLICY", "allow")  # allow | reject
    DELIVERY_LEAD_DAYS = int(os.environ.get("DELIVERY_LEAD_DAYS", "5"))
    LOYALTY_POINT_UNIT = int(os.environ.get("LOYALTY_POINT_UNIT", "100"))

    SEED_DEMO_DATA = _env_bool("SEED_DEMO_DATA", True)

    # Browser origins allowed to call the API (comma-separated); none by default
    CORS_ALLOWED_ORIGINS = tuple(
        o.strip() for o in os.environ.get("CORS_ALLOWED_ORIGINS", "").split(",") if o.strip()
    )


class BusinessType(str, Enum):
    GENERAL = "General"
    HOSPITAL = "Hospital"
    LPG_STATION = "LPGStation"
    SUPERMARKET = "Supermarket"
    EDUCATION = "Education"
    REAL_ESTATE = "RealEstate"


STOCK_POLICIES = ("allow", "reject")


@dataclass(frozen=True)
class BusinessProfile:
    name: str
    address: str
    currency: str
    tax_rate: float
    business_type: BusinessType

    @property
    def is_supermarket(self) -> bool:
        return self.business_type is BusinessType.SUPERMARKET

    @classmethod
    def from_config(cls, config) -> "BusinessProfile":
        raw_type = config.get("BUSINESS_TYPE", BusinessType.GENERAL.value)
        try:
            business_type = BusinessType(raw_type)
        except ValueError:
            raise ValueError(f"Unknown BUSINESS_TYPE: {raw_type}") from None

        return cls(
            name=config.get("BUSINESS_NAME", "Nibso"),
            address=config.get("BUSINESS_ADDRESS", ""),
            currency=config.get("CURRENCY", ""),
            tax_rate=float(config.get("TAX_RATE", 0)),
            business_type=business_type,
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "currency": self.currency,
            "tax_rate": self.tax_rate,
            "business_type": self.business_type.value,
        }
