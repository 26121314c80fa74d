"""
Unit tests for the inspection and sanitizing stages
"""

import json
import logging

import pytest
from django.core.exceptions import PermissionDenied, SuspiciousOperation
from django.http import Http404, HttpResponse
from django.test import RequestFactory

from homecare.security.middleware.content_type import ContentTypeValidationMiddleware
from homecare.security.middleware.error_handling import (
    ErrorSanitizerMiddleware,
    server_error,
    status_for_exception,
)
from homecare.security.middleware.https import HTTPSEnforcementMiddleware
from homecare.security.middleware.request_size_limit import RequestSizeLimitMiddleware
from homecare.security.middleware.security_headers import SecurityHeadersMiddleware
from homecare.security.middleware.suspicious_patterns import SQLInjectionMiddleware, XSSMiddleware


@pytest.fixture
def factory():
    return RequestFactory()


def ok(request):
    return HttpResponse("OK")


def post_json(factory, path, data):
    return factory.post(path, data=json.dumps(data), content_type="application/json")


class TestSecurityHeadersMiddleware:
    def test_protective_headers_set(self, factory):
        middleware = SecurityHeadersMiddleware(ok)
        response = middleware(factory.get("/about"))

        assert response["X-Content-Type-Options"] == "nosniff"
        assert response["X-Frame-Options"] == "DENY"
        assert response["X-XSS-Protection"] == "1; mode=block"
        assert response["Referrer-Policy"] == "strict-origin-when-cross-origin"
        assert "Cache-Control" not in response

    def test_identifying_headers_removed(self, factory):
        def view(request):
            response = HttpResponse("OK")
            response["X-Powered-By"] = "Express"
            response["Server"] = "nginx/1.25"
            return response

        response = SecurityHeadersMiddleware(view)(factory.get("/"))

        assert "X-Powered-By" not in response
        assert "Server" not in response

    def test_api_responses_not_cacheable(self, factory):
        response = SecurityHeadersMiddleware(ok)(factory.get("/api/health"))

        assert response["Cache-Control"] == "no-store, no-cache, must-revalidate, private"
        assert response["Pragma"] == "no-cache"
        assert response["Expires"] == "0"


class TestHTTPSEnforcementMiddleware:
    def test_no_redirect_outside_production(self, factory):
        middleware = HTTPSEnforcementMiddleware(ok)
        assert middleware.process_request(factory.get("/api/health")) is None

    def test_redirects_plain_http_in_production(self, factory, configure):
        configure(ENVIRONMENT="production")
        middleware = HTTPSEnforcementMiddleware(ok)

        response = middleware.process_request(
            factory.get("/services?page=2", HTTP_HOST="care.example.com")
        )

        assert response.status_code == 301
        assert response["Location"] == "https://care.example.com/services?page=2"

    def test_forwarded_https_passes(self, factory, configure):
        configure(ENVIRONMENT="production")
        middleware = HTTPSEnforcementMiddleware(ok)
        request = factory.get("/", HTTP_X_FORWARDED_PROTO="https")

        assert middleware.process_request(request) is None

    def test_secure_request_passes(self, factory, configure):
        configure(ENVIRONMENT="production")
        middleware = HTTPSEnforcementMiddleware(ok)

        assert middleware.process_request(factory.get("/", secure=True)) is None


class TestRequestSizeLimitMiddleware:
    def test_oversized_payload_rejected(self, factory):
        middleware = RequestSizeLimitMiddleware(ok)
        request = factory.post("/api/inquiries", data="{}", content_type="application/json")
        request.META["CONTENT_LENGTH"] = str(11 * 1024 * 1024)

        response = middleware.process_request(request)

        assert response.status_code == 413
        assert json.loads(response.content) == {"error": "Payload too large. Maximum size: 10MB"}

    def test_normal_payload_allowed(self, factory):
        middleware = RequestSizeLimitMiddleware(ok)
        request = post_json(factory, "/api/inquiries", {"name": "Jane"})
        assert middleware.process_request(request) is None

    def test_limit_configurable(self, factory, configure):
        configure(REQUEST_SIZE_LIMIT=10)
        middleware = RequestSizeLimitMiddleware(ok)
        request = post_json(factory, "/api/inquiries", {"name": "Jane Doe"})

        assert middleware.process_request(request).status_code == 413


class TestContentTypeValidationMiddleware:
    def test_form_post_to_api_rejected(self, factory):
        middleware = ContentTypeValidationMiddleware(ok)
        response = middleware.process_request(factory.post("/api/inquiries", data={"name": "Jane"}))

        assert response.status_code == 415
        assert json.loads(response.content) == {
            "error": "Unsupported Media Type. Content-Type must be application/json"
        }

    def test_json_post_allowed(self, factory):
        middleware = ContentTypeValidationMiddleware(ok)
        assert middleware.process_request(post_json(factory, "/api/inquiries", {"name": "Jane"})) is None

    @pytest.mark.parametrize("path", ["/api/admin/upload", "/api/careers/apply"])
    def test_upload_routes_exempt(self, factory, path):
        middleware = ContentTypeValidationMiddleware(ok)
        assert middleware.process_request(factory.post(path, data={"file": "x"})) is None

    def test_reads_not_checked(self, factory):
        middleware = ContentTypeValidationMiddleware(ok)
        assert middleware.process_request(factory.get("/api/health")) is None

    def test_non_api_paths_not_checked(self, factory):
        middleware = ContentTypeValidationMiddleware(ok)
        assert middleware.process_request(factory.post("/contact", data={"name": "Jane"})) is None

    def test_malformed_json_rejected(self, factory):
        middleware = ContentTypeValidationMiddleware(ok)
        request = factory.post("/api/inquiries", data="{not json", content_type="application/json")

        response = middleware.process_request(request)

        assert response.status_code == 400
        assert json.loads(response.content) == {"error": "Malformed JSON body"}

    def test_overly_nested_json_rejected(self, factory):
        middleware = ContentTypeValidationMiddleware(ok)
        body = "[" * 100_000 + "]" * 100_000
        request = factory.post("/api/inquiries", data=body, content_type="application/json")

        response = middleware.process_request(request)

        assert response.status_code == 400
        assert json.loads(response.content) == {"error": "Malformed JSON body"}


class TestSQLInjectionMiddleware:
    def test_body_injection_blocked(self, factory, caplog):
        middleware = SQLInjectionMiddleware(ok)
        request = post_json(factory, "/api/inquiries", {"message": "x'; DROP TABLE users; --"})

        with caplog.at_level(logging.WARNING):
            response = middleware.process_request(request)

        assert response.status_code == 400
        assert json.loads(response.content) == {"error": "Invalid request parameters"}
        assert "[SECURITY] Potential SQL injection detected from IP: 127.0.0.1" in caplog.text
        assert "/api/inquiries" in caplog.text

    def test_query_injection_blocked(self, factory):
        middleware = SQLInjectionMiddleware(ok)
        response = middleware.process_request(factory.get("/api/services", {"q": "1 UNION SELECT * FROM users"}))
        assert response.status_code == 400

    def test_path_param_injection_blocked(self, factory):
        middleware = SQLInjectionMiddleware(ok)
        response = middleware.process_request(
            post_json(factory, "/api/admin/inquiries/1 OR 1=1/reply", {"message": "hello"})
        )
        assert response.status_code == 400

    def test_clean_request_passes(self, factory):
        middleware = SQLInjectionMiddleware(ok)
        request = post_json(factory, "/api/inquiries", {"name": "Jane", "message": "Looking for weekend care"})
        assert middleware.process_request(request) is None

    def test_allowlisted_route_skipped(self, factory):
        middleware = SQLInjectionMiddleware(ok)
        request = post_json(
            factory,
            "/api/admin/articles",
            {"content": "<p>Use -- between dates</p>"},
        )
        assert middleware.process_request(request) is None

    def test_allowlist_configurable(self, factory, configure):
        configure(SQLI_ALLOWLIST=[])
        middleware = SQLInjectionMiddleware(ok)
        request = post_json(factory, "/api/admin/articles", {"content": "a -- b"})
        assert middleware.process_request(request).status_code == 400


class TestXSSMiddleware:
    def test_script_blocked(self, factory, caplog):
        middleware = XSSMiddleware(ok)
        request = post_json(factory, "/api/inquiries", {"message": "<script>alert(1)</script>"})

        response = middleware.process_request(request)

        assert response.status_code == 400
        assert json.loads(response.content) == {"error": "Invalid request content"}
        assert "[SECURITY] Potential XSS attack detected" in caplog.text

    def test_allowlisted_content_route_skipped(self, factory):
        middleware = XSSMiddleware(ok)
        request = post_json(factory, "/api/admin/podcasts/3", {"notes": "<iframe src='https://player.example'>"})
        assert middleware.process_request(request) is None

    def test_allowlist_requires_segment_boundary(self, factory):
        middleware = XSSMiddleware(ok)
        request = post_json(factory, "/api/admin/podcastsx", {"notes": "<iframe src=x>"})
        assert middleware.process_request(request).status_code == 400


class TestErrorSanitizerMiddleware:
    def raise_and_handle(self, factory, exc):
        middleware = ErrorSanitizerMiddleware(ok)
        request = factory.get("/api/clients")
        try:
            raise exc
        except Exception as caught:
            return middleware.process_exception(request, caught)

    def test_development_includes_details(self, factory, caplog):
        response = self.raise_and_handle(factory, RuntimeError("database unavailable"))

        assert response.status_code == 500
        body = json.loads(response.content)
        assert body["error"] == "database unavailable"
        assert any("RuntimeError" in line for line in body["stack"])
        assert "[ERROR] GET /api/clients" in caplog.text

    def test_production_hides_details(self, factory, configure):
        configure(ENVIRONMENT="production")
        response = self.raise_and_handle(factory, RuntimeError("password=hunter2"))

        assert response.status_code == 500
        assert json.loads(response.content) == {"error": "An error occurred processing your request"}

    def test_status_attribute_respected(self, factory):
        exc = ValueError("bad input")
        exc.status = 422
        assert self.raise_and_handle(factory, exc).status_code == 422

    @pytest.mark.parametrize(
        "exc, status",
        [
            (Http404("missing"), 404),
            (PermissionDenied("nope"), 403),
            (SuspiciousOperation("odd"), 400),
            (KeyError("x"), 500),
        ],
    )
    def test_status_mapping(self, exc, status):
        assert status_for_exception(exc) == status

    def test_handler500(self, factory, configure):
        request = factory.get("/api/clients")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            response = server_error(request)
        assert response.status_code == 500
        assert json.loads(response.content)["error"] == "boom"

        configure(ENVIRONMENT="production")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            response = server_error(request)
        assert json.loads(response.content) == {"error": "An error occurred processing your request"}
