"""
JSON route handlers guarded by the security pipeline.

Storage and email are out of scope here; handlers validate, audit and
acknowledge.
"""

import functools
import logging
import uuid

from django.conf import settings
from django.contrib.auth.hashers import check_password
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from hipaa_audit.models import AuditAction
from hipaa_audit.recorder import log_phi_access

from .security.throttling import auth_limiter, password_reset_limiter, public_form_limiter
from .security.utils.request import get_body_or_empty
from .serializers import (
    ArticleSerializer,
    InquiryReplySerializer,
    InquirySerializer,
    IntakeSerializer,
    LoginSerializer,
    PasswordResetSerializer,
    ReferralSerializer,
)

logger = logging.getLogger(__name__)


def admin_required(view_func):
    @functools.wraps(view_func)
    def wrapped_view(request, *args, **kwargs):
        if not request.session.get("is_authenticated"):
            return JsonResponse({"error": "Authentication required"}, status=401)
        return view_func(request, *args, **kwargs)

    return wrapped_view


def _validated(serializer_class, request):
    serializer = serializer_class(data=get_body_or_empty(request))
    if not serializer.is_valid():
        return None, JsonResponse({"error": "Validation failed", "details": serializer.errors}, status=400)
    return serializer.validated_data, None


def _submission(serializer_class, kind):
    @require_POST
    @public_form_limiter
    def view(request):
        data, error = _validated(serializer_class, request)
        if error is not None:
            return error
        submission_id = str(uuid.uuid4())
        logger.info("New %s submission %s", kind, submission_id)
        return JsonResponse({"success": True, "id": submission_id}, status=201)

    view.__name__ = f"submit_{kind}"
    return view


submit_inquiry = _submission(InquirySerializer, "inquiry")
submit_intake = _submission(IntakeSerializer, "intake")
submit_referral = _submission(ReferralSerializer, "referral")


@require_GET
def health(request):
    return JsonResponse({"status": "ok"})


@require_POST
@auth_limiter
def login(request):
    data, error = _validated(LoginSerializer, request)
    if error is not None:
        return error

    password_hash = settings.ADMIN_PASSWORD_HASH
    if (
        not password_hash
        or data["username"] != settings.ADMIN_USERNAME
        or not check_password(data["password"], password_hash)
    ):
        return JsonResponse({"error": "Invalid credentials"}, status=401)

    request.session.cycle_key()
    request.session["user_id"] = data["username"]
    request.session["is_authenticated"] = True
    return JsonResponse({"success": True})


@require_POST
def logout(request):
    request.session.flush()
    return JsonResponse({"success": True})


@require_POST
@password_reset_limiter
def password_reset(request):
    _, error = _validated(PasswordResetSerializer, request)
    if error is not None:
        return error
    # Same answer whether or not the address is known.
    return JsonResponse({"success": True, "message": "If the account exists, a reset link has been sent."})


@require_POST
@admin_required
def create_article(request):
    data, error = _validated(ArticleSerializer, request)
    if error is not None:
        return error
    return JsonResponse({"success": True, "article": data}, status=201)


@require_POST
@admin_required
def reply_to_inquiry(request, inquiry_id):
    _, error = _validated(InquiryReplySerializer, request)
    if error is not None:
        return error

    # The POST is audited as CREATE; the reply also discloses the inquirer's contact details.
    log_phi_access(
        request,
        AuditAction.READ,
        "inquiries",
        str(inquiry_id),
        ["name", "email", "phone"],
        True,
    )
    return JsonResponse({"success": True, "inquiryId": inquiry_id})


@require_GET
@admin_required
def export_clients(request):
    return JsonResponse({"clients": []})
