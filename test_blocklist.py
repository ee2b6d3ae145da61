#!/usr/bin/env python3
"""
test_blocklist.py — Blocked-term matching and blocklist loading.
No API keys or network access required.
"""

import json
import os
import sys
import tempfile

sys.path.insert(0, os.path.dirname(__file__))

from blocklist import BlocklistMatcher, load_terms


def _write_tmp(suffix: str, text: str) -> str:
    with tempfile.NamedTemporaryFile("w", suffix=suffix, delete=False, encoding="utf-8") as f:
        f.write(text)
        return f.name


def test_substring_match_is_case_insensitive():
    matcher = BlocklistMatcher(["cheap followers"])
    assert matcher.is_spam("buy cheap followers now")
    assert matcher.is_spam("Buy CHEAP Followers now!!")
    assert not matcher.is_spam("great video, thanks")
    print("  PASS: Case-insensitive substring match")


def test_stylised_unicode_is_normalized():
    matcher = BlocklistMatcher(["Slot Gacor"])
    # Mathematical bold and fullwidth letters decompose to plain ASCII
    assert matcher.is_spam("main 𝐬𝐥𝐨𝐭 𝐠𝐚𝐜𝐨𝐫 hari ini")
    assert matcher.is_spam("ＳＬＯＴ ＧＡＣＯＲ")
    print("  PASS: NFKD normalization")


def test_empty_blocklist_never_flags():
    matcher = BlocklistMatcher([])
    assert len(matcher) == 0
    for text in ["", "anything", "cheap followers", "𝐬𝐥𝐨𝐭"]:
        assert not matcher.is_spam(text)
    print("  PASS: Empty blocklist")


def test_none_and_blank_text():
    matcher = BlocklistMatcher(["maxwin"])
    assert not matcher.is_spam(None)
    assert not matcher.is_spam("")
    print("  PASS: None/blank text")


def test_blank_and_non_string_terms_dropped():
    matcher = BlocklistMatcher(["", "   ", None, 42, "judi"])
    assert matcher.terms == frozenset({"judi"})
    # A blank term would otherwise match every comment
    assert not matcher.is_spam("nice video")
    print("  PASS: Blank terms dropped")


def test_edge_spaces_in_terms_are_kept():
    matcher = BlocklistMatcher([" win "])
    assert matcher.terms == frozenset({" win "})
    assert matcher.is_spam("big win tonight")
    assert not matcher.is_spam("open the window")
    assert not matcher.is_spam("win")
    print("  PASS: Edge spaces in terms kept")


def test_from_json_file():
    path = _write_tmp(".json", json.dumps(["Cheap Followers", "maxwin"]))
    try:
        matcher = BlocklistMatcher.from_file(path)
        assert len(matcher) == 2
        assert matcher.is_spam("MAXWIN tonight")
    finally:
        os.unlink(path)
    print("  PASS: JSON blocklist")


def test_from_yaml_file():
    path = _write_tmp(".yaml", "- judi online\n- deposit pulsa\n")
    try:
        assert load_terms(path) == ["judi online", "deposit pulsa"]
    finally:
        os.unlink(path)
    print("  PASS: YAML blocklist")


def test_missing_file_falls_back_to_empty():
    matcher = BlocklistMatcher.from_file("/nonexistent/blockedword.json")
    assert len(matcher) == 0
    assert not matcher.is_spam("cheap followers")
    print("  PASS: Missing blocklist is not fatal")


def test_malformed_file_falls_back_to_empty():
    path = _write_tmp(".json", "{not json")
    try:
        assert load_terms(path) == []
    finally:
        os.unlink(path)
    path = _write_tmp(".json", json.dumps({"terms": ["a"]}))
    try:
        assert load_terms(path) == []
    finally:
        os.unlink(path)
    print("  PASS: Malformed blocklist is not fatal")


if __name__ == "__main__":
    tests = [
        test_substring_match_is_case_insensitive,
        test_stylised_unicode_is_normalized,
        test_empty_blocklist_never_flags,
        test_none_and_blank_text,
        test_blank_and_non_string_terms_dropped,
        test_edge_spaces_in_terms_are_kept,
        test_from_json_file,
        test_from_yaml_file,
        test_missing_file_falls_back_to_empty,
        test_malformed_file_falls_back_to_empty,
    ]
    print(f"Running {len(tests)} blocklist tests...\n")
    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"  FAIL: {test.__name__}: {e}")
            import traceback
            traceback.print_exc()
            failed += 1
    print(f"\nResults: {passed} passed, {failed} failed out of {len(tests)} tests.")
    sys.exit(1 if failed else 0)
