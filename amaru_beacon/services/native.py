import ctypes

from loguru import logger

from amaru_beacon.services.config import DEFAULT_LIB
from amaru_beacon.services.errors import NativeLibraryError

# Bump when the exported symbols or the start result codes change.
NATIVE_ABI_VERSION = 1


class NativeNode:
    """ctypes binding to the node shared library.

    Exported C ABI:
        void     amaru_init_logger(void)
        int64_t  amaru_start_node(const char *network, const char *data_dir)
        char    *amaru_get_latest_tip(void)     (JSON, freed with amaru_free_string)
        void     amaru_free_string(char *)
        int64_t  amaru_stop_node(void)          (0 stopped, -1 nothing running)

    The library is loaded lazily on first use so that constructing the
    monitor never fails on a machine without it.
    """

    def __init__(self, lib_path: str | None = None) -> None:
        self.lib_path = lib_path or DEFAULT_LIB
        self._lib: ctypes.CDLL | None = None

    def _load(self) -> ctypes.CDLL:
        if self._lib is not None:
            return self._lib
        try:
            lib = ctypes.CDLL(self.lib_path)
        except OSError as exc:
            raise NativeLibraryError(f"Failed to load {self.lib_path}: {exc}") from exc
        try:
            lib.amaru_init_logger.argtypes = []
            lib.amaru_init_logger.restype = None
            lib.amaru_start_node.argtypes = [ctypes.c_char_p, ctypes.c_char_p]
            lib.amaru_start_node.restype = ctypes.c_int64
            # c_void_p keeps the raw pointer so it can be handed back for freeing
            lib.amaru_get_latest_tip.argtypes = []
            lib.amaru_get_latest_tip.restype = ctypes.c_void_p
            lib.amaru_free_string.argtypes = [ctypes.c_void_p]
            lib.amaru_free_string.restype = None
            lib.amaru_stop_node.argtypes = []
            lib.amaru_stop_node.restype = ctypes.c_int64
        except AttributeError as exc:
            raise NativeLibraryError(f"{self.lib_path} is missing a symbol: {exc}") from exc
        logger.info(f"Loaded node library {self.lib_path} (ABI v{NATIVE_ABI_VERSION})")
        self._lib = lib
        return lib

    def init_logger(self) -> None:
        self._load().amaru_init_logger()

    def start_node(self, network: str, data_dir: str) -> int:
        lib = self._load()
        return int(lib.amaru_start_node(network.encode("utf-8"), data_dir.encode("utf-8")))

    def get_latest_tip(self) -> str:
        lib = self._load()
        ptr = lib.amaru_get_latest_tip()
        if not ptr:
            return ""
        try:
            return ctypes.string_at(ptr).decode("utf-8", errors="replace")
        finally:
            lib.amaru_free_string(ptr)

    def stop_node(self) -> int:
        return int(self._load().amaru_stop_node())
