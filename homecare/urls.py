from django.urls import path

from . import views

urlpatterns = [
    path("api/health", views.health, name="health"),
    path("api/inquiries", views.submit_inquiry, name="inquiries"),
    path("api/intake", views.submit_intake, name="intake"),
    path("api/referrals", views.submit_referral, name="referrals"),
    path("api/auth/login", views.login, name="login"),
    path("api/auth/logout", views.logout, name="logout"),
    path("api/auth/password-reset", views.password_reset, name="password-reset"),
    path("api/admin/articles", views.create_article, name="admin-articles"),
    path(
        "api/admin/inquiries/<str:inquiry_id>/reply",
        views.reply_to_inquiry,
        name="admin-inquiry-reply",
    ),
    path("api/admin/clients/export", views.export_clients, name="admin-clients-export"),
]

handler500 = "homecare.security.middleware.server_error"
