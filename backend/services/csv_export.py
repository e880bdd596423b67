from __future__ import annotations

import csv
import io
import re
from typing import Iterable

from services.models import COMPLETED, Asset

CSV_HEADERS = ["Filename", "Title", "Description", "Keywords", "Marketplace"]
NOTHING_TO_EXPORT_MESSAGE = "No completed metadata to export."


class NothingToExportError(Exception):
    pass


_WHITESPACE = re.compile(r"\s+")


def export_filename(marketplace: str) -> str:
    return f"stock_metadata_{_WHITESPACE.sub('_', marketplace)}.csv"


def build_csv(assets: Iterable[Asset]) -> str:
    """Render completed assets as CSV, every field quoted.

    Raises NothingToExportError when no asset is completed.
    """
    rows = [asset for asset in assets if asset.status == COMPLETED]
    if not rows:
        raise NothingToExportError(NOTHING_TO_EXPORT_MESSAGE)

    output = io.StringIO()
    output.write(",".join(CSV_HEADERS) + "\n")
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for asset in rows:
        writer.writerow(
            [
                asset.file.name,
                asset.title,
                asset.description,
                asset.keywords,
                asset.marketplace,
            ]
        )
    # No trailing newline after the last row.
    return output.getvalue().rstrip("\n")
