class NodeError(Exception):
    """Base class for failures reported by the node boundary."""


class NativeLibraryError(NodeError):
    """The node shared library could not be loaded or is missing a symbol."""


class StartError(NodeError):
    code: int = 0
    reason: str = "Unknown error"

    def __init__(self, code: int | None = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(self.reason)

    @staticmethod
    def from_code(code: int) -> "StartError":
        cls = _START_ERRORS.get(code)
        if cls is None:
            return UnknownStartError(code)
        return cls()


class InvalidNetworkArg(StartError):
    code = -1
    reason = "Failed to get network name"


class InvalidDataDirArg(StartError):
    code = -2
    reason = "Failed to get data directory"


class UnsupportedNetwork(StartError):
    code = -3
    reason = "Invalid network name"


class RuntimeInitFailure(StartError):
    code = -4
    reason = "Failed to create runtime"


class UnknownStartError(StartError):
    def __init__(self, code: int) -> None:
        self.reason = f"Unknown error: {code}"
        super().__init__(code)


_START_ERRORS: dict[int, type[StartError]] = {
    cls.code: cls
    for cls in (InvalidNetworkArg, InvalidDataDirArg, UnsupportedNetwork, RuntimeInitFailure)
}


class PollError(NodeError):
    detail: str = "poll failed"

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class MalformedStatus(PollError):
    """The status report could not be decoded into a RawStatus."""


class NodeUnavailable(PollError):
    detail = "node is not running"
