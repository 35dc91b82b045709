"""Submit a shell command and fetch its result once.

Usage: python run_adhoc.py HOST:PORT INVENTORY.toml "echo hi"
"""

from __future__ import annotations

import sys
import time

from kobe_client import InventoryLoader, NotFoundError, TaskClient, build_adhoc_request, connect


def main(argv: list[str]) -> int:
    endpoint, inventory_path, command = argv
    inventory = InventoryLoader().load(inventory_path)
    request = build_adhoc_request(inventory, "all", "shell", command)

    with connect(endpoint, timeout=10) as connection:
        client = TaskClient(connection, timeout=30)
        handle = client.submit_adhoc(request)
        print(f"submitted {handle.id}")
        # Waiting for completion is left to the caller.
        for _ in range(30):
            try:
                result = client.fetch_result(handle.id)
            except NotFoundError:
                result = None
            if result is not None and result.finished:
                print(result.content, end="")
                return 0 if result.success else 1
            time.sleep(2)
    print("task did not finish in time", file=sys.stderr)
    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
