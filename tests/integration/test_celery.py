"""Integration tests for the Celery configuration."""

import pytest

pytestmark = pytest.mark.integration


class TestCeleryConfig:
    """Verifies Celery loads through Django settings."""

    def test_celery_app_is_importable(self):
        from config.celery import app

        assert app.main == "storefront"

    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "storefront"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE

    def test_tasks_run_eagerly_in_tests(self, settings):
        assert settings.CELERY_TASK_ALWAYS_EAGER is True


class TestOrderConfirmationTask:
    def test_registered_under_stable_name(self):
        from config.celery import app

        assert "orders.send_order_confirmation" in app.tasks

    def test_retries_on_transport_errors(self):
        from smtplib import SMTPException

        from modules.orders.tasks import send_order_confirmation

        assert SMTPException in send_order_confirmation.autoretry_for
        assert ConnectionError in send_order_confirmation.autoretry_for
        assert send_order_confirmation.max_retries == 3
