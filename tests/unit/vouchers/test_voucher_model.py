"""Unit tests for the Voucher model."""

from datetime import timedelta

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

pytestmark = pytest.mark.unit


class TestVoucherModel:
    def test_code_stored_uppercase(self, make_voucher):
        assert make_voucher(" summer10 ").code == "SUMMER10"

    def test_is_exhausted(self, make_voucher):
        assert make_voucher("A", usage_limit=2, used_count=2).is_exhausted
        assert not make_voucher("B", usage_limit=2, used_count=1).is_exhausted
        assert not make_voucher("C", usage_limit=None, used_count=99).is_exhausted

    def test_is_running(self, make_voucher):
        voucher = make_voucher()
        assert voucher.is_running()
        assert not voucher.is_running(voucher.end_date + timedelta(seconds=1))
        assert not voucher.is_running(voucher.start_date - timedelta(seconds=1))
        assert voucher.is_running(voucher.start_date)

    def test_used_count_cannot_exceed_limit(self, make_voucher):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                make_voucher(usage_limit=1, used_count=2)

    def test_default_window_helper_is_current(self, make_voucher):
        voucher = make_voucher()
        assert voucher.start_date < timezone.now() < voucher.end_date
