import logging
from unittest.mock import patch

import pytest

from petpal.utilities import basic_log_config, format_json, format_number, suppress_logs, to_snake_case
from petpal.utilities.log_helpers import LOG_FMT


class TestSnakeCase:
    def test_snake_case(self):
        assert to_snake_case("breed_issues") == "breed_issues"

    def test_with_spaces(self):
        assert to_snake_case("pet name") == "pet_name"

    def test_camel_case(self):
        assert to_snake_case("photoDataUri") == "photo_data_uri"

    def test_pascal_case(self):
        assert to_snake_case("SymptomCheckerOutput") == "symptom_checker_output"

    def test_kebab_case(self):
        assert to_snake_case("breed-identifier") == "breed_identifier"

    def test_acronyms(self):
        assert to_snake_case("HTTPHeader") == "http_header"

    def test_with_numbers(self):
        assert to_snake_case("test123Case") == "test123_case"

    def test_with_leading_trailing_spaces(self):
        assert to_snake_case("  pet name  ") == "pet_name"


class TestFormatNumber:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (3, "3"),
            (-12, "-12"),
            (2.0, "2"),
            (100.0, "100"),
            (0.5, "0.5"),
            (2.25, "2.25"),
            (1e-7, "0.0000001"),
            (1e20, "100000000000000000000"),
            (-0.0, "0"),
        ],
    )
    def test_canonical_decimal(self, value, expected):
        assert format_number(value) == expected

    def test_rejects_bool(self):
        with pytest.raises(TypeError):
            format_number(True)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_rejects_non_finite(self, value):
        with pytest.raises(ValueError, match="non-finite"):
            format_number(value)


class TestFormatJson:
    def test_dict(self):
        assert format_json({"a": 1}) == '{\n  "a": 1\n}'

    def test_json_string_is_reformatted(self):
        assert format_json('{"a": 1}', indent=0) == '{\n"a": 1\n}'

    def test_plain_string(self):
        assert format_json("not json") == '"not json"'


def test_suppress_logs(caplog):
    logger = logging.getLogger("petpal.test")
    with caplog.at_level(logging.INFO, logger="petpal.test"):
        with suppress_logs(logger):
            logger.info("hidden")
        logger.info("shown")

    messages = [r.getMessage() for r in caplog.records]
    assert "hidden" not in messages
    assert "shown" in messages


def test_suppress_logs_by_name_restores_state():
    logger = logging.getLogger("petpal.test.restore")
    logger.disabled = True
    with suppress_logs("petpal.test.restore") as suppressed:
        assert suppressed is logger
    assert logger.disabled is True
    logger.disabled = False


class TestBasicLogConfig:
    @pytest.mark.parametrize("level, expected", [("debug", "DEBUG"), ("Info", "INFO"), (logging.ERROR, logging.ERROR)])
    def test_level(self, level, expected):
        with patch("logging.basicConfig") as basic_config:
            basic_log_config(level)
        basic_config.assert_called_once_with(level=expected, format=LOG_FMT)

    def test_kwargs_passed_through(self):
        with patch("logging.basicConfig") as basic_config:
            basic_log_config(force=True)
        basic_config.assert_called_once_with(level=logging.WARNING, format=LOG_FMT, force=True)
