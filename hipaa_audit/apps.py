from django.apps import AppConfig


class HipaaAuditConfig(AppConfig):
    """App configuration for the HIPAA audit trail."""

    name = "hipaa_audit"
    verbose_name = "HIPAA Audit Trail"
