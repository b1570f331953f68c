from amaru_beacon.services.models import Bootstrapping, NodeState, RawStatus, Ready

STARTING_MESSAGE = "Starting node..."

BOOTSTRAP_MESSAGES: dict[str, str] = {
    "Bootstrapping": "Preparing ledger...",
    "DownloadingSnapshots": "Downloading snapshots...",
    "ImportingSnapshots": "Importing blockchain data...",
}

CHAIN_LABELS = {"Syncing", "CaughtUp"}


def classify(raw: RawStatus) -> NodeState:
    """Map a raw status report to the state shown to observers.

    The label set reported by the node is open; labels not listed here fall
    through to the slot check, so slot 0 never produces Ready.
    """
    message = BOOTSTRAP_MESSAGES.get(raw.status)
    if message is not None:
        return Bootstrapping(message)
    if raw.slot > 0:
        return Ready(raw.tip())
    if raw.status in CHAIN_LABELS:
        return Bootstrapping("Connecting to peers...")
    return Bootstrapping(STARTING_MESSAGE)
