from django.apps import AppConfig


class ReviewsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.reviews"
    label = "reviews"

    def ready(self) -> None:
        from apps.bookings.application.event_handlers import log_domain_event
        from shared.application.message_bus import message_bus

        from .events import RatingSubmitted

        message_bus.register_event_handler(RatingSubmitted, log_domain_event)
