import pytest

from conftest import make_asset
from services.csv_export import NothingToExportError, build_csv, export_filename


def test_header_and_quoted_rows():
    asset = make_asset(
        "sunset.jpg",
        title="Sunset",
        description="Sun over sea",
        keywords="sun,sea",
        status="completed",
    )
    out = build_csv([asset])
    assert out == (
        "Filename,Title,Description,Keywords,Marketplace\n"
        '"sunset.jpg","Sunset","Sun over sea","sun,sea","Adobe Stock"'
    )


def test_embedded_quotes_are_doubled():
    asset = make_asset("q.jpg", title='He said "hi"', status="completed")
    line = build_csv([asset]).split("\n")[1]
    assert '"He said ""hi"""' in line


def test_only_completed_assets_are_exported():
    assets = [
        make_asset("done.jpg", title="ok", status="completed"),
        make_asset("wait.jpg"),
        make_asset("fail.jpg", status="error", error_message="nope"),
    ]
    lines = build_csv(assets).split("\n")
    assert len(lines) == 2
    assert lines[1].startswith('"done.jpg"')


def test_nothing_completed_raises():
    with pytest.raises(NothingToExportError):
        build_csv([make_asset("a.jpg"), make_asset("b.jpg", status="loading")])


def test_export_filename_replaces_whitespace():
    assert export_filename("Adobe Stock") == "stock_metadata_Adobe_Stock.csv"
    assert export_filename("Getty  Images\tPro") == "stock_metadata_Getty_Images_Pro.csv"
