import importlib.util
from pathlib import Path

import pytest

from app.services.local_firmware import LocalOverrideScanner

_SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "tern_admin.py"
_spec = importlib.util.spec_from_file_location("tern_admin", _SCRIPT)
tern_admin = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(tern_admin)


def test_place_override_is_picked_up_by_scanner(tmp_path, cache_dir):
    source = tmp_path / "build.bin"
    source.write_bytes(b"\x09" * 12)

    target = tern_admin.place_override(source, cache_dir, "v1.3.0-rc")

    assert target == cache_dir / "tern-fw-v1.3.0-rc.bin"
    candidate = LocalOverrideScanner(cache_dir).scan()
    assert candidate.tag == "v1.3.0-rc"
    assert candidate.size == 12


def test_place_override_rejects_path_tags(tmp_path, cache_dir):
    source = tmp_path / "build.bin"
    source.write_bytes(b"x")

    with pytest.raises(ValueError):
        tern_admin.place_override(source, cache_dir, "../v1")


def test_attachment_name():
    assert tern_admin._attachment_name("attachment; filename=tern-fw-v1.bin") == "tern-fw-v1.bin"
    assert tern_admin._attachment_name(None) is None
    assert tern_admin._attachment_name('attachment; filename="tern-fw-v1.2.0.bin"') == "tern-fw-v1.2.0.bin"


def test_attachment_name_prefers_utf8_form():
    disposition = "attachment; filename=\"tern-fw-v1-_.bin\"; filename*=UTF-8''tern-fw-v1-%CE%B2.bin"

    assert tern_admin._attachment_name(disposition) == "tern-fw-v1-β.bin"
