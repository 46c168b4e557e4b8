"""Locale classifier tests."""
import pytest

from i18n_ast.locales import SUPPORTED_LOCALES, should_translate


class TestShouldTranslate:

    @pytest.mark.parametrize("text,locale,expected", [
        ("你好", "zh", True),
        ("hello", "zh", False),
        ("hello 世界", "zh", True),
        ("hello", "en", True),
        ("123", "en", False),
        ("¡Hola!", "es", True),
        ("ñ", "es", True),
        ("Œuvre", "fr", True),
        ("à", "fr", True),
        ("42 %", "fr", False),
        ("", "zh", False),
        ("   \n\t", "en", False),
    ])
    def test_locale_table(self, text, locale, expected):
        assert should_translate(text, locale) is expected

    def test_unknown_locale_is_never_translated(self):
        assert should_translate("hello", "de") is False
        assert should_translate("你好", "ja") is False

    def test_supported_locales(self):
        assert set(SUPPORTED_LOCALES) == {"zh", "en", "fr", "es"}
