import itertools
import pathlib

import pytest

from i18n_ast.configuration import I18nAstConfig


@pytest.fixture
def make_config(tmp_path):
    """Build a validated config anchored at tmp_path with formatting disabled."""

    def _make(**overrides):
        values = {
            "entry": ["src"],
            "output": "locales",
            "locales": "zh",
            "i18n_config_file_path": "@/i18n",
            "formatter": "none",
            "base_dir": tmp_path,
        }
        values.update(overrides)
        return I18nAstConfig.model_validate(values)

    return _make


@pytest.fixture
def sequential_keys():
    """Deterministic key factory: prefix.00000001, prefix.00000002, ..."""

    counter = itertools.count(1)

    def _factory(prefix):
        return f"{prefix}.{next(counter):08x}"

    return _factory


@pytest.fixture
def write_source(tmp_path):
    def _write(relative, content):
        path = pathlib.Path(tmp_path, relative)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
