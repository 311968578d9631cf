"""Tests for path normalization and validation."""

from __future__ import annotations

import pytest

from dwebvault.errors import InvalidPathError, ProtectedFileNotWritableError
from dwebvault.paths import (
    MANIFEST_PATH,
    assert_unprotected_path,
    assert_valid_file_path,
    assert_valid_path,
    normalize_path,
)


class TestNormalize:
    """Tests for normalize_path."""

    def test_empty_is_root(self) -> None:
        assert normalize_path("") == "/"
        assert normalize_path(None) == "/"

    def test_adds_leading_slash(self) -> None:
        assert normalize_path("hello.txt") == "/hello.txt"

    def test_keeps_single_leading_slash(self) -> None:
        assert normalize_path("/hello.txt") == "/hello.txt"
        assert normalize_path("//hello.txt") == "/hello.txt"

    def test_percent_decodes(self) -> None:
        assert normalize_path("/subdir/space%20in%20the%20name.txt") == "/subdir/space in the name.txt"

    def test_keeps_trailing_slash(self) -> None:
        """Trailing separators survive so file validation can reject them."""
        assert normalize_path("subdir/") == "/subdir/"


class TestValidation:
    """Tests for the allow-list and file path rules."""

    @pytest.mark.parametrize("path", [
        "/hello.txt",
        "/subdir/space in the name.txt",
        "/a-b_c.d~e!f$g&h'i(j)k*l+m,n;o=p:q@r",
        "/ünïcödé/日本語.txt",
    ])
    def test_valid_paths(self, path: str) -> None:
        assert_valid_path(path)
        assert_valid_file_path(path)

    @pytest.mark.parametrize("path", ["/hello`.txt", "/a<b>.txt", "/quote\".txt", "/pipe|.txt"])
    def test_invalid_characters(self, path: str) -> None:
        with pytest.raises(InvalidPathError):
            assert_valid_path(path)

    def test_file_path_rejects_trailing_slash(self) -> None:
        with pytest.raises(InvalidPathError, match="trailing slash"):
            assert_valid_file_path("/subdir/hello.txt/")

    def test_root_is_not_a_file_path(self) -> None:
        with pytest.raises(InvalidPathError):
            assert_valid_file_path("/")

    def test_directory_path_may_end_in_slash(self) -> None:
        assert_valid_path("/subdir/")


class TestProtected:
    """Tests for the reserved manifest path."""

    def test_manifest_is_protected(self) -> None:
        with pytest.raises(ProtectedFileNotWritableError):
            assert_unprotected_path(MANIFEST_PATH)

    def test_other_paths_are_not(self) -> None:
        assert_unprotected_path("/subdir/dweb.json")
        assert_unprotected_path("/dweb.json.bak")
