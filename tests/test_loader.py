import logging

import numpy as np
import numpy.testing as npt
import pytest

from scampy import read_file
from scampy.loader import read_value


def write_lines(path, text):
    with open(path, "w") as f:
        f.write(text)

    return path


def test_read_value():
    assert read_value("1.5", 0) == 1.5
    assert read_value("-3e2", 10) == -300.0
    assert np.isinf(read_value("inf", 0))


def test_read_value_empty(caplog):
    with caplog.at_level(logging.WARNING, logger="scampy"):
        assert np.isnan(read_value("", 4, "data.txt"))

    assert "#5" in caplog.text


def test_read_value_bad_token():
    with pytest.raises(ValueError, match="line number 3"):
        read_value("abc", 2, "data.txt")


def test_read_file(tmp_path):
    ref = np.array([1.0, -2.5, 3.25, 1e3])
    path = write_lines(tmp_path / "T.txt", "1\n-2.5\n  3.25 \n1e3\n")
    comp = read_file(path)

    assert comp.dtype == np.float64
    npt.assert_equal(ref, comp)


def test_read_file_whitespace_delimited(tmp_path):
    ref = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    path = write_lines(tmp_path / "T.txt", "1.0 2.0\t3.0\n4.0\n  5.0\n")
    comp = read_file(path)

    npt.assert_equal(ref, comp)


def test_read_file_no_trailing_newline(tmp_path):
    path = write_lines(tmp_path / "T.txt", "1\n2\n3")
    comp = read_file(path)

    npt.assert_equal(np.array([1.0, 2.0, 3.0]), comp)


def test_read_file_trailing_blank_lines(tmp_path, caplog):
    path = write_lines(tmp_path / "T.txt", "1.0\n2.0\n\n \n\t\n")
    with caplog.at_level(logging.WARNING, logger="scampy"):
        comp = read_file(path)

    npt.assert_equal(np.array([1.0, 2.0]), comp)
    assert caplog.text == ""


def test_read_file_empty_line(tmp_path, caplog):
    path = write_lines(tmp_path / "T.txt", "1\n\n3\n")
    with caplog.at_level(logging.WARNING, logger="scampy"):
        comp = read_file(path)

    npt.assert_equal(np.array([1.0, np.nan, 3.0]), comp)
    assert "empty line #2" in caplog.text


def test_read_file_bad_line(tmp_path):
    path = write_lines(tmp_path / "T.txt", "1\n2 2.5\nthree\n4\n")
    with pytest.raises(ValueError, match="line number 3"):
        read_file(path)


def test_read_file_empty(tmp_path):
    path = write_lines(tmp_path / "T.txt", "\n\n")
    comp = read_file(path)

    assert comp.shape == (0,)


def test_read_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_file(tmp_path / "missing.txt")
