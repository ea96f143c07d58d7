import logging
from pathlib import Path

from click.testing import CliRunner

from lantern import __version__
from lantern.cli import cli

CONFIG = 'title = "CLI Site"\ntheme = "plain"\n'


def create_project(tmp_path: Path) -> Path:
    (tmp_path / "config.toml").write_text(CONFIG, encoding="utf-8")
    layouts = tmp_path / "themes" / "plain" / "layouts"
    layouts.mkdir(parents=True)
    (layouts / "base.html").write_text("<title>{{ title }}</title>{{ content }}", encoding="utf-8")
    content = tmp_path / "content"
    (content / "posts").mkdir(parents=True)
    (content / "index.md").write_text("---\ntitle: Home\n---\n# Welcome\n", encoding="utf-8")
    (content / "posts" / "first.md").write_text("First post\n", encoding="utf-8")
    return tmp_path


def test_build_command(tmp_path):
    project = create_project(tmp_path)
    result = CliRunner().invoke(cli, ["build", "--root", str(project)])
    assert result.exit_code == 0, result.output
    assert "Built 2 pages, skipped 0 non-page files, copied 0 static files" in result.output
    assert (project / "public" / "index.html").exists()
    assert (project / "public" / "posts" / "first.html").exists()


def test_build_command_defaults_to_cwd(monkeypatch, tmp_path):
    project = create_project(tmp_path)
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["build", "--flat"])
    assert result.exit_code == 0, result.output
    assert "Built 1 pages" in result.output
    assert not (project / "public" / "posts").exists()


def test_build_command_no_clean(tmp_path):
    project = create_project(tmp_path)
    stale = project / "public" / "keep.txt"
    stale.parent.mkdir()
    stale.write_text("x", encoding="utf-8")
    result = CliRunner().invoke(cli, ["build", "--root", str(project), "--no-clean"])
    assert result.exit_code == 0, result.output
    assert stale.exists()


def test_build_command_fatal_error(tmp_path):
    result = CliRunner().invoke(cli, ["build", "--root", str(tmp_path)])
    assert result.exit_code == 1
    assert "Build failed:" in result.output
    assert "Stage: init" in result.output


def test_build_command_reports_page_failures(tmp_path):
    project = create_project(tmp_path)
    (project / "content" / "bad.md").write_bytes(b"\xff\xfe")
    result = CliRunner().invoke(cli, ["build", "--root", str(project)])
    assert result.exit_code == 0
    assert "1 files failed to build:" in result.output
    assert "bad.md" in result.output


def test_new_command_writes_default_archetype(tmp_path):
    project = create_project(tmp_path)
    result = CliRunner().invoke(cli, ["new", "My First Post", "--root", str(project)])
    assert result.exit_code == 0, result.output

    created = project / "content" / "my-first-post.md"
    text = created.read_text(encoding="utf-8")
    assert text.startswith("---\ntitle: My First Post\n")
    assert "tags: []" in text
    assert text.endswith("---\n\n# My First Post\n")
    assert "Created content/my-first-post.md" in result.output


def test_new_command_uses_project_archetype(tmp_path):
    project = create_project(tmp_path)
    (project / "archetypes").mkdir()
    (project / "archetypes" / "default.md").write_text(
        '+++\ntitle = "{{ title }}"\ndate = "{{ date }}"\n+++\n', encoding="utf-8"
    )
    result = CliRunner().invoke(cli, ["new", "Notes", "--root", str(project)])
    assert result.exit_code == 0, result.output
    text = (project / "content" / "notes.md").read_text(encoding="utf-8")
    assert text.startswith('+++\ntitle = "Notes"\ndate = "')


def test_new_command_refuses_to_overwrite(tmp_path):
    project = create_project(tmp_path)
    result = CliRunner().invoke(cli, ["new", "Index", "--root", str(project)])
    assert result.exit_code != 0
    assert "File already exists" in result.output


def test_new_command_outside_project(tmp_path):
    result = CliRunner().invoke(cli, ["new", "Anything", "--root", str(tmp_path)])
    assert result.exit_code != 0
    assert "config.toml" in result.output


def test_new_then_build(tmp_path):
    project = create_project(tmp_path)
    runner = CliRunner()
    runner.invoke(cli, ["new", "Fresh Post", "--root", str(project)])
    result = runner.invoke(cli, ["build", "--root", str(project)])
    assert result.exit_code == 0, result.output
    html = (project / "public" / "fresh-post.html").read_text(encoding="utf-8")
    assert "<title>Fresh Post</title>" in html


def test_version_option():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_module_main_entrypoint():
    from lantern.__main__ import main

    assert callable(main)


def test_build_command_accepts_verbose(tmp_path):
    project = create_project(tmp_path)
    root_logger = logging.getLogger()
    level = root_logger.level
    try:
        result = CliRunner().invoke(cli, ["build", "--root", str(project), "--verbose"])
        assert result.exit_code == 0, result.output
        assert root_logger.level == logging.DEBUG
    finally:
        root_logger.setLevel(level)
    assert (project / "public" / "index.html").exists()


def test_new_command_records_configured_author(tmp_path):
    project = create_project(tmp_path)
    with open(project / "config.toml", "a", encoding="utf-8") as f:
        f.write('\n[params]\nauthor = "Ada Lovelace"\n')
    runner = CliRunner()

    result = runner.invoke(cli, ["new", "Engines", "--root", str(project)])
    assert result.exit_code == 0, result.output
    text = (project / "content" / "engines.md").read_text(encoding="utf-8")
    assert "author: Ada Lovelace\n" in text

    (project / "archetypes").mkdir()
    (project / "archetypes" / "default.md").write_text(
        "---\ntitle: {{ title }}\nauthor: {{ author }}\n---\n", encoding="utf-8"
    )
    result = runner.invoke(cli, ["new", "Looms", "--root", str(project)])
    assert result.exit_code == 0, result.output
    text = (project / "content" / "looms.md").read_text(encoding="utf-8")
    assert text == "---\ntitle: Looms\nauthor: Ada Lovelace\n---\n"
