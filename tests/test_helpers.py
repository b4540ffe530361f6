"""Tests for sievedns.utils.helpers and sievedns.utils.logger."""

from __future__ import annotations

import logging

import pytest

from sievedns.utils.helpers import chunk_list, deduplicate, is_valid_ip, random_label
from sievedns.utils.logger import configure_logging, get_logger


# --- deduplicate ---

def test_deduplicate_removes_dupes():
    assert deduplicate([1, 2, 2, 3, 1]) == [1, 2, 3]


def test_deduplicate_preserves_order():
    assert deduplicate(["b", "a", "b", "c"]) == ["b", "a", "c"]


def test_deduplicate_empty():
    assert deduplicate([]) == []


# --- is_valid_ip ---

@pytest.mark.parametrize("addr", ["192.168.1.1", "8.8.8.8", "::1", "2001:db8::1"])
def test_valid_ips(addr):
    assert is_valid_ip(addr) is True


@pytest.mark.parametrize("addr", ["999.0.0.1", "not-an-ip", "", "8.8.8.8:53"])
def test_invalid_ips(addr):
    assert is_valid_ip(addr) is False


# --- random_label ---

def test_random_label_is_valid_dns_label():
    label = random_label()
    assert len(label) == 12
    assert label.isalnum() and label == label.lower()


def test_random_labels_differ():
    assert len({random_label() for _ in range(20)}) > 1


# --- chunk_list ---

def test_chunk_list_basic():
    assert chunk_list([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]


def test_chunk_list_empty():
    assert chunk_list([], 5) == []


# --- logger ---

def test_get_logger_namespaces_under_sievedns():
    assert get_logger("foo").name == "sievedns.foo"
    assert get_logger("sievedns.core.pipeline").name == "sievedns.core.pipeline"


def test_configure_logging_levels():
    configure_logging(quiet=True)
    assert logging.getLogger("sievedns").level == logging.WARNING
    configure_logging(verbose=True, quiet=True)
    assert logging.getLogger("sievedns").level == logging.DEBUG
    configure_logging()
    assert logging.getLogger("sievedns").level == logging.INFO


def test_configure_logging_file(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    configure_logging(log_file=str(log_file))
    get_logger("test").info("hello file")
    for handler in logging.getLogger("sievedns").handlers:
        handler.flush()
    assert "hello file" in log_file.read_text()
    configure_logging()
