"""ASGI entrypoint for the paywall API."""

from pi_paywall.api.app import create_app
from pi_paywall.app_logging import configure_logging
from pi_paywall.config import Settings
from pi_paywall.containers import build_container

settings = Settings()
# Configure before wiring so store fallback warnings are emitted.
configure_logging(settings.log_level)
app = create_app(build_container(settings))
