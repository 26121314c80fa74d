"""
Request serializers for the JSON routes.

Content routes (articles, pages, jobs) are exempt from the injection scan, so
their serializers clean every HTML field with bleach before it goes anywhere.
"""

from typing import Any, Dict, List

from rest_framework import serializers

from homecare.security.sanitizers import sanitize_rich_text


class RichTextSerializerMixin:
    """
    Sanitize the listed HTML fields after validation.

    Usage:
        class PageSerializer(RichTextSerializerMixin, serializers.Serializer):
            rich_text_fields = ["body"]
    """

    rich_text_fields: List[str] = []

    def to_internal_value(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data = super().to_internal_value(data)  # type: ignore
        for field_name in self.rich_text_fields:
            if isinstance(data.get(field_name), str):
                data[field_name] = sanitize_rich_text(data[field_name])
        return data


class ArticleSerializer(RichTextSerializerMixin, serializers.Serializer):
    rich_text_fields = ["content", "excerpt"]

    title = serializers.CharField(max_length=200)
    slug = serializers.SlugField(max_length=200)
    excerpt = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    content = serializers.CharField()
    published = serializers.BooleanField(default=False)


class InquirySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    email = serializers.EmailField()
    phone = serializers.CharField(required=False, allow_blank=True, max_length=30)
    message = serializers.CharField(max_length=5000)


class IntakeSerializer(serializers.Serializer):
    clientName = serializers.CharField(max_length=120)
    clientEmail = serializers.EmailField(required=False, allow_blank=True)
    clientPhone = serializers.CharField(max_length=30)
    dateOfBirth = serializers.DateField(required=False)
    address = serializers.CharField(required=False, allow_blank=True, max_length=300)
    healthConditions = serializers.CharField(required=False, allow_blank=True, max_length=5000)
    emergencyContact = serializers.DictField(required=False)


class ReferralSerializer(serializers.Serializer):
    referrerName = serializers.CharField(max_length=120)
    referrerEmail = serializers.EmailField()
    referredName = serializers.CharField(max_length=120)
    referredPhone = serializers.CharField(max_length=30)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=5000)


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(max_length=256, trim_whitespace=False)


class PasswordResetSerializer(serializers.Serializer):
    email = serializers.EmailField()


class InquiryReplySerializer(serializers.Serializer):
    message = serializers.CharField(max_length=10000)
