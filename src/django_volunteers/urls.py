"""URL configuration for django-volunteers.

Provides:
- tenant_urlpatterns: endpoints scoped to one organization (need a `slug` kwarg)
- public_urlpatterns: token endpoints that need no login

Example usage in project urls.py:

    from django.urls import path, include

    urlpatterns = [
        path("church/", include("django_volunteers.urls")),
    ]

which serves /church/<slug>/volunteers/shifts/ and
/church/background-check/confirm/<token>/.
"""

from django.urls import include, path

from . import views

app_name = "django_volunteers"

tenant_urlpatterns = [
    # Shifts
    path("shifts/", views.ShiftCreateAPIView.as_view(), name="shift-create"),
    path("shifts/<str:shift_id>/", views.ShiftUpdateAPIView.as_view(), name="shift-update"),
    path(
        "shifts/<str:shift_id>/<str:action>/",
        views.ShiftStatusAPIView.as_view(),
        name="shift-status",
    ),

    # Volunteers
    path("volunteers/", views.VolunteerCreateAPIView.as_view(), name="volunteer-create"),
    path(
        "volunteers/<str:volunteer_id>/",
        views.VolunteerUpdateAPIView.as_view(),
        name="volunteer-update",
    ),
    path(
        "volunteers/<str:volunteer_id>/deactivate/",
        views.VolunteerStatusAPIView.as_view(activate=False),
        name="volunteer-deactivate",
    ),
    path(
        "volunteers/<str:volunteer_id>/reactivate/",
        views.VolunteerStatusAPIView.as_view(activate=True),
        name="volunteer-reactivate",
    ),
    path(
        "volunteers/<str:volunteer_id>/skills/",
        views.VolunteerSkillAPIView.as_view(),
        name="volunteer-skill-add",
    ),
    path(
        "volunteers/<str:volunteer_id>/skills/remove/",
        views.VolunteerSkillRemoveAPIView.as_view(),
        name="volunteer-skill-remove",
    ),
    path("skills/<str:skill_id>/", views.VolunteerSkillUpdateAPIView.as_view(), name="volunteer-skill-update"),

    # Serving opportunities
    path("opportunities/", views.OpportunityCreateAPIView.as_view(), name="opportunity-create"),
    path(
        "opportunities/<str:opportunity_id>/",
        views.OpportunityUpdateAPIView.as_view(),
        name="opportunity-update",
    ),
    path(
        "opportunities/<str:opportunity_id>/status/",
        views.OpportunityStatusAPIView.as_view(),
        name="opportunity-status",
    ),
    path(
        "opportunities/<str:opportunity_id>/delete/",
        views.OpportunityDeleteAPIView.as_view(),
        name="opportunity-delete",
    ),
    path(
        "opportunities/<str:opportunity_id>/skills/",
        views.OpportunitySkillAPIView.as_view(),
        name="opportunity-skill-set",
    ),
    path(
        "opportunities/<str:opportunity_id>/skills/remove/",
        views.OpportunitySkillRemoveAPIView.as_view(),
        name="opportunity-skill-remove",
    ),

    # Availability
    path("availability/", views.AvailabilityCreateAPIView.as_view(), name="availability-create"),
    path(
        "availability/<str:availability_id>/",
        views.AvailabilityUpdateAPIView.as_view(),
        name="availability-update",
    ),
    path(
        "availability/<str:availability_id>/delete/",
        views.AvailabilityDeleteAPIView.as_view(),
        name="availability-delete",
    ),

    # Background checks
    path(
        "volunteers/<str:volunteer_id>/background-check/",
        views.BackgroundCheckReviewAPIView.as_view(),
        name="background-check-review",
    ),
]

public_urlpatterns = [
    path(
        "background-check/confirm/<str:token>/",
        views.BackgroundCheckConfirmAPIView.as_view(),
        name="background-check-confirm",
    ),
]

urlpatterns = [
    path("<slug:slug>/volunteers/", include(tenant_urlpatterns)),
] + public_urlpatterns
