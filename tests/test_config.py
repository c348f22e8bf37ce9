import os
from pathlib import Path
from unittest.mock import patch

from shard import config
from shard.config import _parse_list_display_count


class TestParseListDisplayCount:
    def test_default_when_not_set(self):
        env = os.environ.copy()
        env.pop("SHARD_LIST_DISPLAY_COUNT", None)
        with patch.dict("os.environ", env, clear=True):
            assert _parse_list_display_count() == 20

    def test_valid_value(self):
        with patch.dict("os.environ", {"SHARD_LIST_DISPLAY_COUNT": "40"}):
            assert _parse_list_display_count() == 40

    def test_clamped_below_minimum(self):
        with patch.dict("os.environ", {"SHARD_LIST_DISPLAY_COUNT": "2"}):
            assert _parse_list_display_count() == 5

    def test_clamped_above_maximum(self):
        with patch.dict("os.environ", {"SHARD_LIST_DISPLAY_COUNT": "1000"}):
            assert _parse_list_display_count() == 200

    def test_invalid_non_integer(self):
        with patch.dict("os.environ", {"SHARD_LIST_DISPLAY_COUNT": "abc"}):
            assert _parse_list_display_count() == 20


class TestPaths:
    def test_files_live_in_data_dir(self):
        assert config.DB_PATH.parent == config.DATA_DIR
        assert config.LOG_PATH.parent == config.DATA_DIR

    def test_data_dir_is_absolute(self):
        assert isinstance(config.DATA_DIR, Path)
        assert config.DATA_DIR.is_absolute()
