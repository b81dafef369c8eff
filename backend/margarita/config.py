# backend/margarita/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/margarita.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///margarita.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Cost and pricing constants (strings so they load as exact Decimals)
    PRICING_HOURLY_LABOR_RATE = os.environ.get("PRICING_HOURLY_LABOR_RATE", "7.00")
    PRICING_RETAIL_MARKUP = os.environ.get("PRICING_RETAIL_MARKUP", "3.00")
    PRICING_WHOLESALE_MARKUP = os.environ.get("PRICING_WHOLESALE_MARKUP", "1.86")
    # Percent below suggested price at which a product is flagged underpriced
    PRICING_MISPRICING_THRESHOLD = os.environ.get("PRICING_MISPRICING_THRESHOLD", "20.00")
    # Largest accepted discount (or upsell) percentage on a sale
    PRICING_MAX_DISCOUNT = os.environ.get("PRICING_MAX_DISCOUNT", "100.00")

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "2"))

    # Front-end dev servers allowed to call the API from the browser
    CORS_ALLOWED_ORIGINS = tuple(
        o.strip() for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",") if o.strip()
    )
