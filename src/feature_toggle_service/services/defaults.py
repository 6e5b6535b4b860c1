"""Toggles every deployment starts with; other TeamMove code refers to these keys by name."""

from __future__ import annotations

from ..models.dto import FeatureToggleCreate

DEFAULT_TOGGLES: tuple[FeatureToggleCreate, ...] = (
    FeatureToggleCreate(
        feature_key="dark_mode",
        feature_name="Dark mode",
        description="Lets users switch between the light and dark themes",
        category="ui",
    ),
    FeatureToggleCreate(
        feature_key="delete_events",
        feature_name="Event deletion",
        description="Lets organizers delete the events they created",
        category="events",
    ),
    FeatureToggleCreate(
        feature_key="user_profile_upload",
        feature_name="Profile photo upload",
        description="Lets users upload a profile picture",
        category="profile",
    ),
    FeatureToggleCreate(
        feature_key="event_messaging",
        feature_name="Event messaging",
        description="Sends messages to the participants of an event",
        category="communication",
    ),
    FeatureToggleCreate(
        feature_key="auto_invitations",
        feature_name="Automatic invitations",
        description="Emails participants automatically when an event is created",
        category="communication",
    ),
    FeatureToggleCreate(
        feature_key="subscription_upgrade",
        feature_name="Subscription upgrade",
        description="Lets organizations move to a paid plan",
        category="subscription",
    ),
    FeatureToggleCreate(
        feature_key="event_export",
        feature_name="Event export",
        description="Exports event data as PDF or CSV",
        category="events",
    ),
    FeatureToggleCreate(
        feature_key="chatbot_support",
        feature_name="Virtual assistant",
        description="Enables the virtual assistant for customer support",
        category="support",
    ),
    FeatureToggleCreate(
        feature_key="analytics_tracking",
        feature_name="Analytics tracking",
        description="Collects usage statistics and analytics",
        category="analytics",
    ),
    FeatureToggleCreate(
        feature_key="email_notifications",
        feature_name="Email notifications",
        description="Sends notification emails",
        category="communication",
    ),
)

DEFAULT_TOGGLE_KEYS = frozenset(toggle.feature_key for toggle in DEFAULT_TOGGLES)
