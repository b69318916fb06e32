import pytest

from build_archive import load_config, load_posts, main, render_archive, render_archive_page


def write_site(root, config_text, posts=None):
    root.joinpath("config.yml").write_text(config_text, encoding="utf-8")
    posts_dir = root / "_posts"
    posts_dir.mkdir()
    for name, text in (posts or {}).items():
        posts_dir.joinpath(name).write_text(text, encoding="utf-8")
    return root / "config.yml"


POSTS = {
    "2025-09-13-rspec.md": "---\ntitle: RSpec\nfavorite: true\n---\nOne two three.\n",
    "2024-03-02-eloquent-ruby.md": "---\ntitle: Eloquent Ruby\nlayout: writeup\nfavorite: true\n---\nFour five.\n",
}


def test_main_writes_page_and_fragment(tmp_path, capsys) -> None:
    config_path = write_site(
        tmp_path,
        'site_title: "Ruby Notes"\nfragment_path: "_includes/archive.html"\n',
        POSTS,
    )

    main([str(config_path)])

    page = (tmp_path / "_site" / "archive.html").read_text(encoding="utf-8")
    fragment = (tmp_path / "_includes" / "archive.html").read_text(encoding="utf-8")

    assert fragment == render_archive(load_posts(tmp_path / "_posts"))
    assert fragment in page
    assert "<title>Ruby Notes – Archive</title>" in page
    assert "2 posts, 5 words" in page
    assert fragment.index("<h2>2025</h2>") < fragment.index("<h2>2024</h2>")
    assert '<li class="favorite"><a href="/2025/09/13/rspec.html">RSpec</a></li>' in fragment
    assert '<li><a href="/2024/03/02/eloquent-ruby.html">Eloquent Ruby (Book Writeup)</a></li>' in fragment

    out = capsys.readouterr().out
    assert "Wrote" in out
    assert "archive.html" in out


def test_main_without_posts_writes_empty_archive(tmp_path, capsys) -> None:
    config_path = write_site(tmp_path, "fragment_path: frag.html\n")

    main([str(config_path)])

    assert (tmp_path / "frag.html").read_text(encoding="utf-8") == ""
    assert "0 posts" in (tmp_path / "_site" / "archive.html").read_text(encoding="utf-8")
    assert "WARNING: No posts found." in capsys.readouterr().err


def test_main_missing_config_exits(tmp_path) -> None:
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path / "nope.yml")])

    assert exc.value.code == 1


def test_main_reports_bad_posts(tmp_path, capsys) -> None:
    config_path = write_site(tmp_path, "", {"2025-01-01-broken.md": "---\ntitle: Broken\n"})

    with pytest.raises(SystemExit) as exc:
        main([str(config_path)])

    assert exc.value.code == 1
    assert "ERROR:" in capsys.readouterr().err


def test_load_config_defaults(tmp_path) -> None:
    path = tmp_path / "config.yml"
    path.write_text("extra_head: '<meta name=\"x\">'\n", encoding="utf-8")

    cfg = load_config(path)

    assert cfg["site_title"] == "Blog"
    assert cfg["posts_dir"] == "_posts"
    assert cfg["output_dir"] == "_site"
    assert cfg["archive_filename"] == "archive.html"
    assert cfg["fragment_path"] == ""
    assert cfg["include_drafts"] is False
    assert cfg["show_word_count"] is True
    assert cfg["extra_head"] == ['<meta name="x">']
    assert cfg["extra_footer"] == []


def test_render_archive_page_options() -> None:
    cfg = {
        "site_title": "Ruby & Friends",
        "site_tagline": "",
        "stylesheet": "",
        "show_word_count": False,
        "extra_head": ['<meta name="robots" content="noindex">'],
        "extra_footer": [],
    }

    page = render_archive_page("<h2>2025</h2>\n", cfg, post_count=1, word_count=1234)

    assert "Ruby &amp; Friends" in page
    assert '<p class="archive-summary">1 post</p>' in page
    assert "words" not in page
    assert "stylesheet" not in page
    assert '<meta name="robots" content="noindex">' in page


def test_render_archive_page_formats_word_count() -> None:
    cfg = {"site_title": "Blog", "stylesheet": "style.css"}

    page = render_archive_page("", cfg, post_count=3, word_count=1234)

    assert "3 posts, 1,234 words" in page
    assert '<link rel="stylesheet" href="style.css">' in page


def test_load_config_reads_string_flags(tmp_path) -> None:
    path = tmp_path / "config.yml"
    path.write_text('include_drafts: "false"\nshow_word_count: "no"\n', encoding="utf-8")

    cfg = load_config(path)

    assert cfg["include_drafts"] is False
    assert cfg["show_word_count"] is False
