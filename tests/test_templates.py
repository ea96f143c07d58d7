import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from markupsafe import Markup

from lantern.config import SiteConfig
from lantern.errors import TemplateLoadError, TemplateLookupError
from lantern.templates import TemplateResolver, logical_name


def create_layouts(tmp_path: Path) -> Path:
    layouts = tmp_path / "layouts"
    (layouts / "partials").mkdir(parents=True)
    (layouts / "taxonomy").mkdir()
    (layouts / "_default").mkdir()
    (layouts / "base.html").write_text(
        "<title>{{ title }}</title>{{ partial('header') }}{{ cached_partial('header') }}{{ content }}",
        encoding="utf-8",
    )
    (layouts / "_default" / "list.html").write_text("list", encoding="utf-8")
    (layouts / "taxonomy" / "terms.html").write_text("terms", encoding="utf-8")
    (layouts / "taxonomy" / "tags.html").write_text("tags", encoding="utf-8")
    (layouts / "broken.html").write_text("{% if %}", encoding="utf-8")
    (layouts / "notes.txt").write_text("not a template", encoding="utf-8")
    (layouts / "partials" / "header.html").write_text(
        "<header>{{ site.title }}</header>", encoding="utf-8"
    )
    (layouts / "partials" / "greet.html").write_text("Hello {{ name }}", encoding="utf-8")
    return layouts


def test_logical_names(tmp_path):
    layouts = tmp_path / "layouts"
    assert logical_name(layouts / "base.html", layouts) == "base"
    assert logical_name(layouts / "_default" / "single.html", layouts) == "single"
    assert logical_name(layouts / "taxonomy" / "terms.html", layouts) == "taxonomy/terms"
    assert logical_name(layouts / "taxonomy" / "tags.html", layouts) == "taxonomy/tags"


def test_resolver_indexes_layouts_and_skips_broken(tmp_path, caplog):
    layouts = create_layouts(tmp_path)
    with caplog.at_level(logging.WARNING, logger="lantern.templates"):
        templates = TemplateResolver(layouts).load()

    assert list(templates) == ["base", "list", "taxonomy/tags", "taxonomy/terms"]
    assert "broken" not in templates
    assert "header" not in templates
    assert "Skipping layout broken.html" in caplog.text
    assert templates.partials.names == ["greet", "header"]


def test_base_renders_with_both_partial_helpers(tmp_path):
    templates = TemplateResolver(create_layouts(tmp_path)).load()
    html = templates.get("base").render(
        title="Home", site=SiteConfig(title="My Site"), content=Markup("<p>Hi</p>")
    )
    assert html == (
        "<title>Home</title><header>My Site</header><header>My Site</header><p>Hi</p>"
    )
    assert "header" in templates.cache
    assert len(templates.cache) == 1


def test_partial_keyword_arguments(tmp_path):
    layouts = create_layouts(tmp_path)
    (layouts / "page.html").write_text(
        "{{ partial('greet', name='Ada') }}|{{ cached_partial('greet', name='Bob') }}",
        encoding="utf-8",
    )
    templates = TemplateResolver(layouts).load()
    assert templates.get("page").render() == "Hello Ada|Hello Bob"


def test_fresh_partials_compile_every_call_cached_ones_once(tmp_path):
    templates = TemplateResolver(create_layouts(tmp_path)).load()
    assert templates.partials.compile("header") is not templates.partials.compile("header")
    assert templates.cache.get("header") is templates.cache.get("header")


def test_cached_partial_compiles_once_across_threads(tmp_path):
    templates = TemplateResolver(create_layouts(tmp_path)).load()
    with ThreadPoolExecutor(max_workers=8) as executor:
        compiled = list(executor.map(lambda _: templates.cache.get("greet"), range(32)))
    assert all(template is compiled[0] for template in compiled)
    assert len(templates.cache) == 1


def test_unknown_partial_raises_lookup_error(tmp_path):
    layouts = create_layouts(tmp_path)
    (layouts / "missing.html").write_text("{{ partial('nope') }}", encoding="utf-8")
    templates = TemplateResolver(layouts).load()

    with pytest.raises(TemplateLookupError):
        templates.partials.compile("nope")
    with pytest.raises(TemplateLookupError):
        templates.get("missing").render()


def test_unknown_layout_raises_lookup_error(tmp_path):
    templates = TemplateResolver(create_layouts(tmp_path)).load()
    with pytest.raises(TemplateLookupError) as excinfo:
        templates.get("single")
    assert isinstance(excinfo.value, KeyError)
    assert str(excinfo.value) == "layout template not found: single"


def test_missing_partials_directory_gives_empty_bundle(tmp_path):
    layouts = tmp_path / "layouts"
    layouts.mkdir()
    (layouts / "base.html").write_text("{{ content }}", encoding="utf-8")
    templates = TemplateResolver(layouts).load()
    assert len(templates.partials) == 0
    assert "base" in templates


def test_broken_partial_is_skipped(tmp_path, caplog):
    layouts = create_layouts(tmp_path)
    (layouts / "partials" / "bad.html").write_text("{% for %}", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="lantern.templates"):
        templates = TemplateResolver(layouts).load()
    assert "bad" not in templates.partials
    assert "Skipping partial bad" in caplog.text


def test_missing_layouts_directory_is_fatal(tmp_path):
    with pytest.raises(TemplateLoadError):
        TemplateResolver(tmp_path / "nope").load()


def test_template_set_is_read_only(tmp_path):
    templates = TemplateResolver(create_layouts(tmp_path)).load()
    with pytest.raises(TypeError):
        templates.templates["extra"] = templates.get("base")  # type: ignore[index]


def test_title_is_autoescaped(tmp_path):
    templates = TemplateResolver(create_layouts(tmp_path)).load()
    html = templates.get("base").render(title="<b>x</b>", site=SiteConfig(), content="")
    assert "<title>&lt;b&gt;x&lt;/b&gt;</title>" in html
