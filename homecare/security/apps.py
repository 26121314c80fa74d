import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class SecurityConfig(AppConfig):
    name = "homecare.security"
    label = "homecare_security"
    verbose_name = "Home Care Security Pipeline"

    def ready(self) -> None:
        # Import checks to register system checks at app load
        from . import checks  # noqa: F401
        from .conf import validate_security_configuration
        from .pipeline import configure_pipeline

        cfg = configure_pipeline()

        for message in validate_security_configuration(cfg):
            if message.startswith("ERROR"):
                logger.error(message)
            elif message.startswith("WARNING"):
                logger.warning(message)
            else:
                logger.info(message)

        logger.info(
            "Security pipeline initialized (environment=%s, geo blocking=%s)",
            cfg.get("ENVIRONMENT"),
            "on" if cfg.get("ENABLE_GEO_BLOCKING") else "off",
        )
