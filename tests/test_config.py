# tests/test_config.py
"""
Tests for RewriteConfig.
"""

from sonic_spin.config import DEFAULT_CONFIG, RewriteConfig


class TestRewriteConfig:

    def test_defaults_are_valid(self):
        assert DEFAULT_CONFIG.validate() == []
        assert DEFAULT_CONFIG.max_rewrites == 10_000
        assert DEFAULT_CONFIG.max_passes == 16
        assert DEFAULT_CONFIG.parenthesize_operands is True
        assert DEFAULT_CONFIG.macro_name == "sonic_spin"

    def test_validate(self):
        config = RewriteConfig(max_rewrites=0, max_passes=-1, macro_name="not ok")
        assert len(config.validate()) == 3

    def test_overrides_skip_none(self):
        config = DEFAULT_CONFIG.with_overrides(max_passes=3, macro_name=None)
        assert config.max_passes == 3
        assert config.macro_name == "sonic_spin"
        assert DEFAULT_CONFIG.max_passes == 16
