from django.conf import settings
from django.core.checks import Error, Warning, register

from .conf import merge_config
from .pipeline import PIPELINE_MIDDLEWARE


@register()
def pipeline_order_check(app_configs, **kwargs):
    errors = []
    middleware = list(getattr(settings, "MIDDLEWARE", []))

    present = [path for path in PIPELINE_MIDDLEWARE if path in middleware]
    missing = [path for path in PIPELINE_MIDDLEWARE if path not in middleware]
    if missing:
        errors.append(
            Error(
                "Security pipeline stages are missing from MIDDLEWARE.",
                hint="Add: " + ", ".join(missing),
                id="security.E001",
            )
        )

    positions = [middleware.index(path) for path in present]
    if positions != sorted(positions):
        errors.append(
            Error(
                "Security pipeline stages are out of order in MIDDLEWARE.",
                hint="Use homecare.security.pipeline.install_pipeline() to build MIDDLEWARE.",
                id="security.E001",
            )
        )

    cfg = merge_config(getattr(settings, "HOMECARE_SEC", {}))
    if cfg.get("ENABLE_GEO_BLOCKING") and not cfg.get("GEO_BLOCKING", {}).get("TARGET_COUNTRY"):
        errors.append(
            Warning(
                "Geo blocking is enabled without GEO_BLOCKING.TARGET_COUNTRY.",
                id="security.W001",
            )
        )

    return errors
