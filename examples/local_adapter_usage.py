"""
Example: Managing an upload area with the local adapter

This example writes, lists, inspects and removes files below a
temporary root directory, and shows how failures are reported as
results instead of exceptions.
"""

import io
import logging
import tempfile

from localfs import (
    Failure,
    LinkHandling,
    LocalAdapter,
    NotSupportedError,
    Success,
    Visibility,
)


def show_listing(adapter: LocalAdapter) -> None:
    """Print every entry below the root."""
    for entry in adapter.list_contents(recursive=True):
        print(f"  {entry}")


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    with tempfile.TemporaryDirectory() as tmpdir:
        adapter = LocalAdapter(tmpdir, link_handling=LinkHandling.SKIP)
        print(f"Root: {adapter.path_prefix}")

        # Writing
        adapter.write("reports/2024/q1.txt", "revenue: 100\n")
        adapter.write("reports/2024/q2.txt", b"revenue: 120\n", {"visibility": "private"})
        adapter.write_stream("uploads/logo.png", io.BytesIO(b"\x89PNG\r\n\x1a\n...."))
        adapter.append("logs/app.log", "started\n")
        adapter.append("logs/app.log", "finished\n")

        print("\nAfter writing:")
        show_listing(adapter)

        # Metadata
        print("\nMetadata:")
        for path in ["reports/2024/q2.txt", "uploads/logo.png"]:
            size = adapter.get_size(path).unwrap().size
            mimetype = adapter.get_mimetype(path).unwrap().mimetype
            visibility = adapter.get_visibility(path).unwrap().visibility
            print(f"  {path}: {size} bytes, {mimetype}, {visibility.value}")

        # Results
        match adapter.read("reports/2023/q4.txt"):
            case Success(value=attrs):
                print(attrs.contents)
            case Failure(kind=kind, detail=detail):
                print(f"\nRead failed ({kind.value}): {detail}")

        # Moving things around
        adapter.copy("reports/2024/q1.txt", "archive/q1.txt")
        adapter.rename("logs/app.log", "archive/app.log")
        adapter.set_visibility("archive/q1.txt", Visibility.PRIVATE)
        adapter.delete_dir("logs")

        print("\nAfter archiving:")
        show_listing(adapter)

        # Links are skipped here, but fail under the default policy
        strict = LocalAdapter(tmpdir)
        try:
            strict.list_contents(recursive=True)
        except NotSupportedError as e:
            print(f"\nStrict listing failed: {e}")
        else:
            print("\nStrict listing found no links")


if __name__ == "__main__":
    main()
