#!/usr/bin/env python3
"""
Logging And String Helper Tests
"""

import logging
import ujson

from bizcore.utils.log import JsonLogFormatter, OriginInfo, logging_context
from bizcore.utils.strings import split_keywords, str2bool, truncate


def _record(message, level=logging.INFO):
    return logging.LogRecord("bizcore.test", level, __file__, 10, message, None, None)


class TestJsonLogFormatter:

    def test_context_is_merged_into_records(self):
        formatter = JsonLogFormatter()

        with logging_context({"tenant_id": "tenant-1", "ignored": None}):
            inside = ujson.loads(formatter.format(_record("computing metrics")))
        outside = ujson.loads(formatter.format(_record("done")))

        assert inside["message"] == "computing metrics"
        assert inside["tenant_id"] == "tenant-1"
        assert "ignored" not in inside
        assert "tenant_id" not in outside

    def test_nested_contexts_stack(self):
        formatter = JsonLogFormatter()

        with logging_context({"tenant_id": "tenant-1"}):
            with logging_context({"measurement_date": "2024-03-01"}):
                inner = ujson.loads(formatter.format(_record("inner")))
            outer = ujson.loads(formatter.format(_record("outer")))

        assert inner["tenant_id"] == "tenant-1"
        assert inner["measurement_date"] == "2024-03-01"
        assert "measurement_date" not in outer

    def test_origin_info(self):
        formatter = JsonLogFormatter(origin_info=OriginInfo(service="bizcore", version="0.1.0", instance="host-1"))
        output = ujson.loads(formatter.format(_record("hello")))
        assert output["origin"] == {"service": "bizcore", "version": "0.1.0", "instance": "host-1"}


class TestStrings:

    def test_split_keywords(self):
        assert split_keywords("leak, drip,, burst ") == ["leak", "drip", "burst"]
        assert split_keywords(["leak", " ", "drip "]) == ["leak", "drip"]
        assert split_keywords(None) == []

    def test_truncate(self):
        assert truncate("abcdef", 3) == "abc"
        assert truncate("abc", 3) == "abc"
        assert truncate(None, 3) is None

    def test_str2bool(self):
        assert str2bool("True")
        assert str2bool("1")
        assert not str2bool("no")
