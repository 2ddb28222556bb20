from pathlib import Path

from filevault.config import load_settings


def test_defaults_match_latest_service(monkeypatch, tmp_path):
    for name in ("ALLOWED_EXTENSIONS", "COMPRESS_PDF", "PORT", "REDIS_URL", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))

    settings = load_settings()
    assert settings.upload_dir == Path(tmp_path).resolve()
    assert settings.allowed_extensions == frozenset({".pdf"})
    assert settings.restricted is True
    assert settings.compress_pdf is True
    assert settings.port == 5000
    assert settings.cors_origins == ("*",)


def test_first_iteration_configuration(monkeypatch, tmp_path):
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
    monkeypatch.setenv("ALLOWED_EXTENSIONS", "")
    monkeypatch.setenv("COMPRESS_PDF", "no")
    monkeypatch.setenv("PORT", "3000")

    settings = load_settings()
    assert settings.restricted is False
    assert settings.compress_pdf is False
    assert settings.port == 3000


def test_extension_list_is_normalized(monkeypatch, tmp_path):
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
    monkeypatch.setenv("ALLOWED_EXTENSIONS", "PDF, .Txt ,")

    assert load_settings().allowed_extensions == frozenset({".pdf", ".txt"})
