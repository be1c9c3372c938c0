from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from apps.attribution.views import CampaignRedirectView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/v1/", include("apps.core.api_router")),
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("r/<str:code>", CampaignRedirectView.as_view(), name="campaign-redirect"),
]
