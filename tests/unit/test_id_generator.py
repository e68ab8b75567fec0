"""Tests for gm_common.id_generator and gm_common.datetime_utils."""

from datetime import UTC, datetime

import pytest

from src.gm_common.datetime_utils import days_from, iso_or_none, utc_now
from src.gm_common.id_generator import SnowflakeIdGenerator, generate_id


class TestSnowflakeIdGenerator:
    def test_returns_str(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        assert isinstance(gen.next_id(), str)

    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        ids = {gen.next_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_monotonically_increasing(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        prev = int(gen.next_id())
        for _ in range(100):
            current = int(gen.next_id())
            assert current > prev
            prev = current

    def test_machine_id_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(machine_id=1024)

    def test_module_generator_fits_varchar_64(self) -> None:
        assert len(generate_id()) <= 64


class TestDatetimeUtils:
    def test_utc_now_is_aware_utc(self) -> None:
        now = utc_now()
        assert isinstance(now, datetime)
        assert now.tzinfo == UTC

    def test_days_from(self) -> None:
        start = datetime(2026, 1, 31, tzinfo=UTC)
        assert days_from(start, 30) == datetime(2026, 3, 2, tzinfo=UTC)

    def test_iso_or_none(self) -> None:
        assert iso_or_none(None) is None
        assert iso_or_none(datetime(2026, 1, 1, tzinfo=UTC)) == "2026-01-01T00:00:00+00:00"
