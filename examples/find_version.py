"""
Command-line example for the binary_version library.

Prints the version of a U-Boot or Linux kernel binary, or the first
capture of a custom pattern:

    python find_version.py <binary> [pattern]
"""
import sys
import logging
from pathlib import Path

# Add the parent directory to the path so we can import the library
sys.path.insert(0, str(Path(__file__).parent.parent))

from binary_version import BinaryVersionFinder, FinderConfig


def main(binary, pattern=None):
    """Run the version lookup example."""
    finder = BinaryVersionFinder(FinderConfig())

    found = finder.version_from_file(binary, pattern=pattern)
    if found is None:
        print(f"{binary!r} does not have known version information.", file=sys.stderr)
        return 1

    print(f"{binary!r} has {found} version")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    if len(sys.argv) < 2:
        print("Usage: python find_version.py <binary> [pattern]", file=sys.stderr)
        sys.exit(2)

    sys.exit(main(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else None))
