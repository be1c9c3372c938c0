from __future__ import annotations

from django.urls import path

from apps.cron.views import CronDailyView, CronJobView

urlpatterns = [
    path("cron/daily/", CronDailyView.as_view(), name="cron-daily"),
    path("cron/<str:job>/", CronJobView.as_view(), name="cron-job"),
]
