#!/usr/bin/env python3
"""
Coalescing Demo -- chuk-mcp-tiles

Builds a throwaway tiles directory, then fires a burst of concurrent
requests for the same tile and shows that storage is read once. Also
walks through a conditional (304) request, a missing tile and an
out-of-range coordinate.

Usage:
    python examples/coalescing_demo.py
"""

import asyncio
import tempfile
from pathlib import Path

from tool_runner import ToolRunner

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


def build_tiles(root: Path) -> None:
    for z in range(3):
        for x in range(2**z):
            for y in range(2**z):
                path = root / str(z) / str(x) / f"{y}.png"
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(PNG_HEADER + f"tile {z}/{x}/{y}".encode())


async def main() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp) / "Tiles"
        build_tiles(root)
        runner = ToolRunner(tiles_root_path=str(root), max_zoom=2)

        print("=" * 60)
        print("chuk-mcp-tiles -- Request Coalescing")
        print("=" * 60)

        results = await asyncio.gather(*(runner.run("tile_get", z=2, x=1, y=3) for _ in range(100)))
        statuses = {r["status"] for r in results}
        status = await runner.run("tile_status")
        cache = status["cache"]
        print(f"\n100 concurrent requests for 2/1/3 -> statuses {sorted(statuses)}")
        print(f"  Backend reads: {cache['backend_fetches']}")
        print(f"  Coalesced:     {cache['coalesced']}")
        print(f"  Cached tiles:  {cache['entries']}")

        first = results[0]
        again = await runner.run("tile_get", z=2, x=1, y=3, if_none_match=first["etag"])
        print(f"\nConditional request with ETag {first['etag']} -> {again['status']}")

        tms = await runner.run("tile_get", z=2, x=1, y=0, scheme="tms")
        print(f"TMS row 0 at zoom 2 -> XYZ row {tms['y']} (status {tms['status']})")

        unsupported = await runner.run("tile_get", z=2, x=1, y=3, ext="exe")
        print(f"Unsupported extension -> {unsupported['status']}: {unsupported['error']}")

        (root / "2" / "0" / "0.png").unlink()
        missing = await runner.run("tile_get", z=2, x=0, y=0)
        print(f"Missing tile -> {missing['status']}: {missing['error']}")

        out_of_range = await runner.run("tile_get", z=2, x=4, y=0)
        print(f"Column out of range -> {out_of_range['status']}: {out_of_range['error']}")

        print("\n" + await runner.run_text("tile_status"))
        await runner.close()


if __name__ == "__main__":
    asyncio.run(main())
