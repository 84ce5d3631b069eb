"""Application factory and app-wide configuration."""

import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

from calccore.app.api.routes import api_bp
from calccore.config import Settings, settings as default_settings
from calccore.core.rate_source import NbuRateSource
from calccore.core.rates import RateConverter

logger = logging.getLogger(__name__)


def build_rate_converter(settings: Settings) -> RateConverter:
    """One converter per process, fed by the configured exchange endpoint."""
    source = NbuRateSource(
        url=settings.RATE_SOURCE_URL,
        timeout=settings.RATE_FETCH_TIMEOUT_SECONDS,
    )
    return RateConverter(
        fetch=source,
        codes=settings.RATE_CODES,
        home=settings.HOME_CURRENCY,
        ttl=settings.rate_cache_ttl,
    )


def create_app(
    settings: Optional[Settings] = None,
    rate_converter: Optional[RateConverter] = None,
) -> Flask:
    """Build the Flask app instance."""
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)
    app.config["CALC_SETTINGS"] = settings

    CORS(
        app,
        resources={r"/api/*": {"origins": settings.CORS_ORIGINS}},
        supports_credentials=True,
    )

    converter = rate_converter or build_rate_converter(settings)
    app.extensions["rate_converter"] = converter
    if settings.REFRESH_RATES_ON_STARTUP:
        report = converter.refresh()
        logger.info("Startup rate refresh: %s", {code: outcome.value for code, outcome in report.outcomes.items()})

    app.register_blueprint(api_bp, url_prefix="/api")
    return app
