from pathlib import Path

from lantern.assets import StaticMirror


def create_static(tmp_path: Path) -> Path:
    static = tmp_path / "static"
    (static / "css").mkdir(parents=True)
    (static / "img" / "icons").mkdir(parents=True)
    (static / "css" / "site.css").write_text("body { color: red; }", encoding="utf-8")
    (static / "img" / "icons" / "logo.svg").write_text("<svg/>", encoding="utf-8")
    (static / "robots.txt").write_text("User-agent: *", encoding="utf-8")
    (static / "favicon.ico").write_bytes(b"\x00\x01\x02")
    return static


def test_mirror_preserves_relative_paths(tmp_path):
    static = create_static(tmp_path)
    output = tmp_path / "public"
    report = StaticMirror(static, output).run()

    assert len(report.copied) == 4
    assert report.errors == []
    assert (output / "css" / "site.css").read_text(encoding="utf-8") == "body { color: red; }"
    assert (output / "img" / "icons" / "logo.svg").exists()
    assert (output / "robots.txt").exists()
    assert (output / "favicon.ico").read_bytes() == b"\x00\x01\x02"


def test_mirror_overwrites_existing_files(tmp_path):
    static = create_static(tmp_path)
    output = tmp_path / "public"
    (output / "css").mkdir(parents=True)
    (output / "css" / "site.css").write_text("stale", encoding="utf-8")

    StaticMirror(static, output).run()
    assert (output / "css" / "site.css").read_text(encoding="utf-8") == "body { color: red; }"


def test_missing_static_directory_copies_nothing(tmp_path):
    report = StaticMirror(tmp_path / "static", tmp_path / "public").run()
    assert report.copied == []
    assert report.errors == []
    assert not (tmp_path / "public").exists()


def test_copy_failure_does_not_stop_siblings(monkeypatch, tmp_path):
    static = create_static(tmp_path)
    output = tmp_path / "public"
    original_copy = StaticMirror.copy

    def flaky_copy(self, source, dest):
        if source.name == "robots.txt":
            raise PermissionError("denied")
        original_copy(self, source, dest)

    monkeypatch.setattr(StaticMirror, "copy", flaky_copy)
    report = StaticMirror(static, output).run()

    assert len(report.copied) == 3
    assert len(report.errors) == 1
    failed_source, error = report.errors[0]
    assert failed_source == static / "robots.txt"
    assert isinstance(error, PermissionError)
    assert not (output / "robots.txt").exists()
    assert (output / "favicon.ico").exists()


def test_directory_creation_failure_is_reported_per_file(tmp_path):
    static = create_static(tmp_path)
    output = tmp_path / "public"
    output.mkdir()
    (output / "css").write_text("a file where a directory should be", encoding="utf-8")

    report = StaticMirror(static, output).run()
    assert [source.name for source, _ in report.errors] == ["site.css"]
    assert len(report.copied) == 3
