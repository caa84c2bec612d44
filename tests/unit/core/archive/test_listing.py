from __future__ import annotations

"""
Unit tests for the dry-run listing writer.
"""

import io

from pyinitramfs.core.archive.listing import ListingWriter


def test_listing_lines():
    out = io.StringIO()
    writer = ListingWriter(out)
    source = io.BytesIO(b"data")
    source.name = "/bin/app"

    writer.write_directory("/lib")
    writer.write_link("/lib64", "/lib")
    writer.write_regular("/init", source, 0o755)
    writer.write_regular("/files/anon", io.BytesIO(b""), 0o644)

    assert writer.lines == [
        "d /lib",
        "l /lib64 -> /lib",
        "f /init 0755 (/bin/app)",
        "f /files/anon 0644",
    ]
    assert out.getvalue().splitlines() == writer.lines
