import os

import pytest


def pytest_configure(config):
    # Register markers used by the composite_proofs test-suite without requiring plugins.
    config.addinivalue_line(
        "markers", "slow: pairing-heavy or bit-proof-heavy test (py_ecc is pure Python)"
    )


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(config, items):
    """
    Skip `slow` tests when COMPOSITE_PROOFS_SKIP_SLOW=1.

    Accumulator and verifiable-encryption proofs run many pure-Python
    pairings or bit proofs; lightweight environments can leave them out and
    still exercise every other code path.
    """
    if os.getenv("COMPOSITE_PROOFS_SKIP_SLOW", "").strip().lower() not in {"1", "true", "yes", "on"}:
        return
    skip = pytest.mark.skip(reason="slow test (COMPOSITE_PROOFS_SKIP_SLOW=1)")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip)
