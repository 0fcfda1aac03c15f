from pathlib import Path

from core.paths import (
    document_slug,
    has_document_extension,
    is_skipped_name,
    relative_parts,
    slug_to_title,
)


def test_is_skipped_name():
    assert is_skipped_name(".hidden")
    assert is_skipped_name("node_modules")
    assert is_skipped_name("__pycache__")
    assert not is_skipped_name("docs")
    assert not is_skipped_name("node_modules", excluded=())


def test_document_extension_and_slug():
    exts = (".md", ".markdown")
    assert has_document_extension("Readme.MD", exts)
    assert not has_document_extension("notes.txt", exts)
    assert document_slug("intro.markdown", exts) == "intro"
    assert document_slug("Readme.MD", exts) == "Readme"


def test_slug_to_title():
    assert slug_to_title("hello-big_world") == "hello big world"


def test_relative_parts():
    root = Path("/srv/wiki")
    assert relative_parts("/srv/wiki/a/b.md", root) == ("a", "b.md")
    assert relative_parts("/srv/other/b.md", root) is None
    assert relative_parts("/srv/wiki", root) == ()
