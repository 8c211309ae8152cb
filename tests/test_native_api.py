"""Tests for the native dispatch table"""
import ctypes
import threading
from ctypes import POINTER, c_int, c_size_t

import pytest

from purefitz import _native_api
from purefitz._native_api import (
    NativeAPI,
    candidate_versions,
    install_native_api,
    library_name,
    load_library,
    load_native_api,
    reset_native_api,
)
from purefitz._ctypes_types import (
    FzBufferPtr,
    FzColorParams,
    FzColorspacePtr,
    FzContextPtr,
    FzCookie,
    FzDevicePtr,
    FzIRect,
    FzLink,
    FzMatrix,
    FzOutline,
    FzPagePtr,
    FzPixmapPtr,
    FzRect,
    FzSeparationsPtr,
    FzStextPagePtr,
)
from purefitz._symbols import SYMBOLS, Signature
from purefitz.config import Config
from purefitz.exceptions import NativeLibraryError

from fakes import FakeMuPDF


@pytest.fixture(autouse=True)
def _clean_table():
    reset_native_api()
    yield
    reset_native_api()


class TestLibraryName:
    @pytest.mark.parametrize(
        "platform, expected",
        [("linux", "libmupdf.so"), ("darwin", "libmupdf.dylib"), ("win32", "libmupdf.dll")],
    )
    def test_platform_names(self, platform, expected):
        """Each platform gets its conventional file name"""
        assert library_name(platform) == expected

    def test_missing_library(self):
        """An unloadable library raises NativeLibraryError"""
        with pytest.raises(NativeLibraryError, match="cannot load library"):
            load_library("/nonexistent/libmupdf-missing.so")


class TestSymbolResolution:
    def test_descriptors_attached(self):
        """Every registered symbol gets its restype and argtypes"""
        lib = FakeMuPDF()
        NativeAPI(lib.lib)
        for name, signature in SYMBOLS.items():
            fn = getattr(lib.lib, name)
            assert fn.restype is signature.restype
            assert fn.argtypes == list(signature.argtypes)

    def test_missing_symbol(self):
        """A missing entry point fails construction and names the symbol"""
        lib = FakeMuPDF(missing=("fz_new_svg_device",))
        with pytest.raises(NativeLibraryError, match="fz_new_svg_device"):
            NativeAPI(lib.lib)

    def test_by_value_structures_in_registry(self):
        """Geometry entry points pass and return structures by value"""
        assert SYMBOLS["fz_bound_page"].restype is FzRect
        assert SYMBOLS["fz_scale"].restype is FzMatrix
        assert SYMBOLS["fz_round_rect"].restype is FzIRect
        assert SYMBOLS["fz_transform_rect"].argtypes == (FzRect, FzMatrix)

    @pytest.mark.parametrize(
        "name, expected",
        [
            (
                "fz_new_pixmap_with_bbox",
                Signature(
                    FzPixmapPtr,
                    (FzContextPtr, FzColorspacePtr, FzIRect, FzSeparationsPtr, c_int),
                ),
            ),
            (
                "fz_new_draw_device",
                Signature(FzDevicePtr, (FzContextPtr, FzMatrix, FzPixmapPtr)),
            ),
            (
                "fz_run_page_contents",
                Signature(
                    None,
                    (FzContextPtr, FzPagePtr, FzDevicePtr, FzMatrix, POINTER(FzCookie)),
                ),
            ),
            (
                "fz_new_buffer_from_pixmap_as_png",
                Signature(FzBufferPtr, (FzContextPtr, FzPixmapPtr, FzColorParams)),
            ),
            (
                "fz_new_stext_page",
                Signature(FzStextPagePtr, (FzContextPtr, FzRect)),
            ),
        ],
    )
    def test_render_pipeline_signatures(self, name, expected):
        """Pixmap, device and page-run entry points keep their by-value arguments"""
        signature = SYMBOLS[name]
        assert signature.restype is expected.restype
        assert len(signature.argtypes) == len(expected.argtypes)
        for actual, wanted in zip(signature.argtypes, expected.argtypes):
            assert actual is wanted

    def test_metadata_buffer_size_is_size_t(self):
        """fz_lookup_metadata takes its buffer size as size_t"""
        signature = SYMBOLS["fz_lookup_metadata"]
        assert signature.restype is c_int
        assert signature.argtypes[-1] is c_size_t


class TestStructureLayout:
    @pytest.mark.parametrize(
        "struct, size",
        [(FzRect, 16), (FzIRect, 16), (FzMatrix, 24), (FzColorParams, 4)],
    )
    def test_value_struct_sizes(self, struct, size):
        """Geometry and color structures match their C sizes"""
        assert ctypes.sizeof(struct) == size

    @pytest.mark.skipif(ctypes.sizeof(ctypes.c_void_p) != 8, reason="64-bit layout")
    def test_cookie_size(self):
        """The cookie's 64-bit counter is 8-byte aligned"""
        assert ctypes.sizeof(FzCookie) == 24
        assert FzCookie.progress_max.offset == 8

    @pytest.mark.skipif(ctypes.sizeof(ctypes.c_void_p) != 8, reason="64-bit layout")
    @pytest.mark.parametrize(
        "struct, field, offset",
        [
            (FzLink, "next", 8),
            (FzLink, "rect", 16),
            (FzLink, "uri", 32),
            (FzOutline, "page", 24),
            (FzOutline, "next", 40),
            (FzOutline, "down", 48),
        ],
    )
    def test_list_node_offsets(self, struct, field, offset):
        """Link and outline nodes are walked at the C field offsets"""
        assert getattr(struct, field).offset == offset


class TestVersionNegotiation:
    def test_candidates_start_with_configured(self):
        """The configured version is tried first, then patch 10 down to 0"""
        candidates = candidate_versions("1.24.10")
        assert candidates[0] == "1.24.10"
        assert candidates[1:] == [f"1.24.{p}" for p in range(9, -1, -1)]

    def test_candidates_outside_patch_range(self):
        """A patch number above 10 is kept and the patch range still follows"""
        candidates = candidate_versions("1.23.15")
        assert candidates[0] == "1.23.15"
        assert len(candidates) == 12
        assert candidates[-1] == "1.23.0"

    def test_configured_version_accepted(self):
        """No probing when the configured version works"""
        lib = FakeMuPDF()
        api = NativeAPI(lib.lib)
        assert api.negotiate_version("1.24.10", 1024) == "1.24.10"
        assert lib.context_versions == ["1.24.10"]
        assert lib.live == {}

    def test_adopts_nearby_patch(self, caplog):
        """An older patch release is found and the trial contexts are dropped"""
        lib = FakeMuPDF(accepted_versions=("1.24.8",))
        api = NativeAPI(lib.lib)
        with caplog.at_level("WARNING", logger="purefitz._native_api"):
            assert api.negotiate_version("1.24.10", 1024) == "1.24.8"
        assert api.version == "1.24.8"
        assert lib.context_versions == ["1.24.10", "1.24.9", "1.24.8"]
        assert lib.live == {}
        assert "using 1.24.8" in caplog.text

    def test_no_version_accepted(self):
        """Exhausting the candidates is fatal"""
        lib = FakeMuPDF(accepted_versions=("2.0.0",))
        api = NativeAPI(lib.lib)
        with pytest.raises(NativeLibraryError, match="1.24.10"):
            api.negotiate_version("1.24.10", 1024)
        with pytest.raises(NativeLibraryError):
            api.version

    def test_new_context_uses_negotiated_version(self):
        """Contexts are created with the adopted version string"""
        lib = FakeMuPDF(accepted_versions=("1.24.3",))
        api = NativeAPI(lib.lib)
        api.negotiate_version("1.24.10", 1024)
        ctx = api.new_context(4096)
        assert lib.context_versions[-1] == "1.24.3"
        assert lib.context_store[-1] == 4096
        api.drop_context(ctx)


class TestMemoization:
    def test_built_once(self, monkeypatch):
        """Concurrent first calls share a single dispatch table"""
        built = []

        def fake_load_library(name=None):
            lib = FakeMuPDF()
            built.append(lib)
            return lib.lib

        monkeypatch.setattr(_native_api, "load_library", fake_load_library)
        results = []
        threads = [
            threading.Thread(target=lambda: results.append(load_native_api(Config())))
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(built) == 1
        assert len(results) == 8
        assert all(api is results[0] for api in results)
        assert results[0].version == "1.24.10"

    def test_failure_is_memoized(self, monkeypatch):
        """A failed initialization is re-raised without loading again"""
        attempts = []

        def failing_load_library(name=None):
            attempts.append(name)
            raise NativeLibraryError("cannot load library: test")

        monkeypatch.setattr(_native_api, "load_library", failing_load_library)
        with pytest.raises(NativeLibraryError) as first:
            load_native_api(Config())
        with pytest.raises(NativeLibraryError) as second:
            load_native_api(Config())
        assert attempts == [None]
        assert second.value is first.value

    def test_failed_version_negotiation_is_memoized(self, monkeypatch):
        """A library without a usable ABI version is only tried once"""
        built = []

        def fake_load_library(name=None):
            lib = FakeMuPDF(accepted_versions=())
            built.append(lib)
            return lib.lib

        monkeypatch.setattr(_native_api, "load_library", fake_load_library)
        for _ in range(3):
            with pytest.raises(NativeLibraryError, match="cannot create context"):
                load_native_api(Config())
        assert len(built) == 1
        assert len(built[0].context_versions) == 11

    def test_reset_forgets_failure(self, monkeypatch):
        """After a reset the next call loads the library again"""
        calls = []

        def flaky_load_library(name=None):
            calls.append(name)
            if len(calls) == 1:
                raise NativeLibraryError("cannot load library: test")
            return FakeMuPDF().lib

        monkeypatch.setattr(_native_api, "load_library", flaky_load_library)
        with pytest.raises(NativeLibraryError):
            load_native_api(Config())
        reset_native_api()
        assert load_native_api(Config()).version == "1.24.10"
        assert len(calls) == 2

    def test_config_library_is_used(self, monkeypatch):
        """The configured library name reaches the loader"""
        seen = []

        def fake_load_library(name=None):
            seen.append(name)
            return FakeMuPDF().lib

        monkeypatch.setattr(_native_api, "load_library", fake_load_library)
        load_native_api(Config(library="/opt/mupdf/libmupdf.so"))
        assert seen == ["/opt/mupdf/libmupdf.so"]

    def test_install_replaces_table(self):
        """install_native_api swaps the memoized table"""
        api = NativeAPI(FakeMuPDF().lib)
        install_native_api(api)
        assert load_native_api() is api
