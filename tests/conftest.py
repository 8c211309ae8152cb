from __future__ import annotations

import pytest

from purefitz._native_api import NativeAPI, install_native_api, load_native_api, reset_native_api
from purefitz.config import DEFAULT_MAX_STORE, DEFAULT_VERSION
from purefitz.exceptions import NativeLibraryError

from fakes import FakeMuPDF
from pdfgen import build_pdf


@pytest.fixture(scope="session")
def pdf_bytes() -> bytes:
    return build_pdf()


@pytest.fixture
def pdf_path(tmp_path, pdf_bytes):
    path = tmp_path / "fixture.pdf"
    path.write_bytes(pdf_bytes)
    return path


@pytest.fixture
def use_fake():
    """Return an installer that makes a FakeMuPDF the process-wide table."""

    def install(lib: FakeMuPDF) -> FakeMuPDF:
        api = NativeAPI(lib.lib)
        api.negotiate_version(DEFAULT_VERSION, DEFAULT_MAX_STORE)
        install_native_api(api)
        lib.calls.clear()
        return lib

    yield install
    reset_native_api()


@pytest.fixture
def fake(use_fake):
    """A default three-page fake libmupdf."""
    return use_fake(FakeMuPDF())


@pytest.fixture
def native():
    """The real libmupdf; tests using it are skipped when it is not installed."""
    reset_native_api()
    try:
        api = load_native_api()
    except NativeLibraryError as exc:
        pytest.skip(f"libmupdf not available: {exc}")
    yield api
    reset_native_api()
