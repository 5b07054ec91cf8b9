"""Tests for dap_registry.registration_id."""
from __future__ import annotations

import datetime
import uuid
from unittest.mock import patch

import pytest

from dap_registry.errors import InvalidRegistrationId
from dap_registry.registration_id import RegistrationId

_UTC = datetime.timezone.utc


def _ms(*args: int) -> int:
    return int(datetime.datetime(*args, tzinfo=_UTC).timestamp() * 1000)


class TestRegistrationIdCreate:
    def test_string_form(self) -> None:
        text = str(RegistrationId.create())
        assert text.startswith("reg_")
        assert len(text) == len("reg_") + 26
        assert text[4] in "01234567"

    def test_embeds_uuid_v7(self) -> None:
        registration_id = RegistrationId.create()
        assert registration_id.uuid.version == 7
        assert registration_id.uuid.variant == uuid.RFC_4122

    def test_ids_are_unique(self) -> None:
        ids = {str(RegistrationId.create(timestamp_ms=1_700_000_000_000)) for _ in range(200)}
        assert len(ids) == 200

    def test_uses_wall_clock_by_default(self) -> None:
        with patch("dap_registry.registration_id._now_ms", return_value=1_700_000_000_123):
            registration_id = RegistrationId.create()
        assert registration_id.extract_timestamp() == 1_700_000_000_123

    def test_wall_clock_is_close_to_now(self) -> None:
        before = datetime.datetime.now(_UTC)
        extracted = RegistrationId.create().extract_date()
        after = datetime.datetime.now(_UTC)
        assert before - datetime.timedelta(milliseconds=1) <= extracted <= after

    @pytest.mark.parametrize("timestamp_ms", [-1, 1 << 48])
    def test_rejects_out_of_range_timestamp(self, timestamp_ms: int) -> None:
        with pytest.raises(ValueError):
            RegistrationId.create(timestamp_ms=timestamp_ms)


class TestRegistrationIdTimestamp:
    def test_millisecond_precision(self) -> None:
        timestamp = _ms(2024, 5, 17, 12, 30, 45) + 987
        registration_id = RegistrationId.create(timestamp_ms=timestamp)
        assert registration_id.extract_timestamp() == timestamp
        assert registration_id.extract_date().microsecond == 987_000

    def test_far_future_date(self) -> None:
        expected = datetime.datetime(2100, 1, 1, tzinfo=_UTC)
        registration_id = RegistrationId.create(timestamp_ms=_ms(2100, 1, 1))
        assert registration_id.extract_date() == expected

    def test_near_epoch_date(self) -> None:
        expected = datetime.datetime(1970, 1, 2, tzinfo=_UTC)
        registration_id = RegistrationId.create(timestamp_ms=86_400_000)
        assert registration_id.extract_date() == expected

    def test_timestamp_survives_round_trip(self) -> None:
        registration_id = RegistrationId.create(timestamp_ms=1_234_567_890_123)
        parsed = RegistrationId.parse(str(registration_id))
        assert parsed.extract_timestamp() == 1_234_567_890_123

    def test_date_is_utc(self) -> None:
        assert RegistrationId.create().extract_date().tzinfo == _UTC


class TestRegistrationIdParse:
    def test_round_trip(self) -> None:
        registration_id = RegistrationId.create()
        assert RegistrationId.parse(str(registration_id)) == registration_id
        assert str(RegistrationId.parse(str(registration_id))) == str(registration_id)

    def test_zero_suffix(self) -> None:
        parsed = RegistrationId.parse("reg_" + "0" * 26)
        assert parsed.uuid.int == 0

    def test_accepts_any_uuid_version(self) -> None:
        v4 = uuid.uuid4()
        parsed = RegistrationId.parse(str(RegistrationId(uuid=v4)))
        assert parsed.uuid == v4

    def test_rejects_wrong_prefix(self) -> None:
        suffix = str(RegistrationId.create())[4:]
        with pytest.raises(InvalidRegistrationId, match='prefix must be "reg"'):
            RegistrationId.parse("user_" + suffix)

    def test_rejects_missing_prefix(self) -> None:
        suffix = str(RegistrationId.create())[4:]
        with pytest.raises(InvalidRegistrationId, match='prefix must be "reg"'):
            RegistrationId.parse(suffix)

    @pytest.mark.parametrize("suffix", ["", "0" * 25, "0" * 27])
    def test_rejects_wrong_length(self, suffix: str) -> None:
        with pytest.raises(InvalidRegistrationId, match="Invalid length"):
            RegistrationId.parse("reg_" + suffix)

    @pytest.mark.parametrize("char", ["u", "i", "l", "o", "A", "-"])
    def test_rejects_characters_outside_alphabet(self, char: str) -> None:
        with pytest.raises(InvalidRegistrationId):
            RegistrationId.parse("reg_" + char + "0" * 25)

    def test_rejects_overflowing_suffix(self) -> None:
        with pytest.raises(InvalidRegistrationId, match="128 bits"):
            RegistrationId.parse("reg_8" + "0" * 25)

    def test_rejects_non_string(self) -> None:
        with pytest.raises(InvalidRegistrationId):
            RegistrationId.parse(42)  # type: ignore[arg-type]
