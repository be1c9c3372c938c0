from django.urls import include, path

urlpatterns = [
    path("auth/", include("apps.users.urls")),
    path("", include("apps.matches.urls")),
    path("", include("apps.deliverables.urls")),
    path("", include("apps.fulfillment.urls")),
    path("", include("apps.attribution.urls")),
    path("", include("apps.payments.urls")),
    path("", include("apps.cron.urls")),
]
