"""
Request-hardening pipeline for the home care agency site.

Inspection middleware (injection patterns, content type, payload size),
decision middleware (geo blocking, rate limiting) and header/error
sanitizing. Stage order lives in homecare.security.pipeline.
"""
