"""
Asynchronous lookup example for the binary_version library.

Looks up the versions of several binaries concurrently. Each lookup runs
in the default executor, so the event loop stays free while images are
scanned.
"""
import sys
import asyncio
from pathlib import Path

# Add the parent directory to the path so we can import the library
sys.path.insert(0, str(Path(__file__).parent.parent))

from binary_version import BinaryVersionFinder, BinaryKind


async def lookup(finder, path):
    """Try U-Boot, then Linux kernel, on one file."""
    for kind in (BinaryKind.UBOOT, BinaryKind.LINUX_KERNEL):
        with open(path, 'rb') as stream:
            found = await finder.version_async(stream, kind)
        if found is not None:
            return path, kind, found
    return path, None, None


async def main(paths):
    """Run the async lookup example."""
    finder = BinaryVersionFinder()

    results = await asyncio.gather(*(lookup(finder, path) for path in paths))

    for path, kind, found in results:
        if found is None:
            print(f"{path}: no version found")
        else:
            print(f"{path}: {kind.value} {found}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python async_lookup.py <binary> [<binary> ...]", file=sys.stderr)
        sys.exit(2)

    asyncio.run(main(sys.argv[1:]))
