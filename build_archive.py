#!/usr/bin/env python3
import re
import sys
import html
from pathlib import Path
from datetime import datetime, date

import markdown       # pip install markdown
import yaml           # pip install pyyaml
from bs4 import BeautifulSoup  # pip install beautifulsoup4

DEFAULT_CONFIG_FILENAME = "config.yml"

# Post files look like "2025-09-13-rspec-basics.md"
POST_FILENAME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})-(.+)\.(?:md|markdown)$")

WRITEUP_LAYOUT = "writeup"
WRITEUP_SUFFIX = " (Book Writeup)"
FAVORITE_CLASS = "favorite"

TRUTHY_STRINGS = ("true", "yes", "1", "y", "on")


class PostError(ValueError):
    pass


# -----------------------
# Config
# -----------------------

def get_config_path_from_args(argv=None) -> Path:
    """
    Determine which config file to use.

    - If a path is passed as first argument, use that.
    - Otherwise, assume config.yml in the current directory.
    """
    args = sys.argv[1:] if argv is None else argv
    if args:
        return Path(args[0]).resolve()
    return Path(DEFAULT_CONFIG_FILENAME).resolve()


def _as_str_list(value):
    # extra_head / extra_footer can be a string or a list
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(x) for x in value]
    return []


def load_config(config_path: Path) -> dict:
    """Load YAML config and apply defaults."""
    if not config_path.exists():
        print(f"Config file not found: {config_path}", file=sys.stderr)
        sys.exit(1)

    data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}

    cfg = {
        "site_title": data.get("site_title", "Blog"),
        "site_tagline": data.get("site_tagline", ""),
        "posts_dir": data.get("posts_dir", "_posts"),
        "output_dir": data.get("output_dir", "_site"),
        "archive_filename": data.get("archive_filename", "archive.html"),
        # optional bare fragment, e.g. "_includes/archive.html"
        "fragment_path": data.get("fragment_path") or "",
        "permalink": data.get("permalink", "/:categories/:year/:month/:day/:title.html"),
        "stylesheet": data.get("stylesheet", "style.css"),
        "include_drafts": as_bool(data.get("include_drafts", False)),
        "show_word_count": as_bool(data.get("show_word_count", True)),
        "extra_head": _as_str_list(data.get("extra_head", [])),
        "extra_footer": _as_str_list(data.get("extra_footer", [])),
    }
    return cfg


# -----------------------
# Loading posts
# -----------------------

def slugify(text: str) -> str:
    """
    Convert a label like 'Ruby Books' into a URL-friendly slug: 'ruby-books'.
    """
    s = str(text).strip().lower()
    s = re.sub(r"[\s_]+", "-", s)
    s = re.sub(r"[^a-z0-9-]", "", s)
    s = re.sub(r"-{2,}", "-", s).strip("-")
    return s


def as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return bool(value)


def coerce_datetime(value):
    """
    Turn a front matter date into a naive `datetime`.

    YAML gives date/datetime objects for plain values; anything else is read as
    a string starting with YYYY-MM-DD, optionally followed by a time
    (e.g. "2025-09-13 10:00:00 -0500"). A bare date means midnight and a
    UTC offset is dropped, keeping the wall-clock time.
    Returns None when no date can be read.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        s = value.strip()
        for fmt, length in (("%Y-%m-%d %H:%M:%S", 19), ("%Y-%m-%dT%H:%M:%S", 19), ("%Y-%m-%d", 10)):
            try:
                return datetime.strptime(s[:length], fmt)
            except ValueError:
                continue
    return None


def split_front_matter(text: str, source="<string>"):
    """
    Split a post into (front_matter_dict, markdown_body).

    Front matter is a YAML mapping at the very top, opened by a '---' line and
    closed by a '---' or '...' line. A leading byte order mark is ignored.
    Text without a leading '---' has no front matter.
    """
    text = text.lstrip("\ufeff")
    lines = text.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, text

    for i in range(1, len(lines)):
        if lines[i].strip() in ("---", "..."):
            fm_text = "\n".join(lines[1:i])
            body = "\n".join(lines[i + 1:])
            break
    else:
        raise PostError(f"{source}: front matter starts with '---' but is never closed")

    try:
        data = yaml.safe_load(fm_text) or {}
    except (yaml.YAMLError, ValueError) as e:
        # PyYAML raises ValueError for well-formed but impossible timestamps (2025-02-30)
        raise PostError(f"{source}: invalid YAML front matter") from e
    if not isinstance(data, dict):
        raise PostError(f"{source}: front matter must be a mapping")

    return data, body.strip()


def _categories(meta):
    raw = meta.get("categories", meta.get("category"))
    if raw is None:
        return []
    if isinstance(raw, str):
        return raw.split()
    if isinstance(raw, list):
        return [str(c) for c in raw]
    return [str(raw)]


def build_url(pattern: str, post_date: date, slug: str, categories=()) -> str:
    """
    Expand a permalink pattern.

    Placeholders: :categories, :year, :month, :day, :title
    """
    url = (
        pattern.replace(":categories", "/".join(slugify(c) for c in categories))
        .replace(":year", f"{post_date.year:04d}")
        .replace(":month", f"{post_date.month:02d}")
        .replace(":day", f"{post_date.day:02d}")
        .replace(":title", slug)
    )
    url = re.sub(r"/{2,}", "/", url)
    if not url.startswith("/"):
        url = "/" + url
    return url


def parse_post_file(path: Path, permalink: str):
    """
    Parse one post file into a post dict:

      {
        "_dt": datetime, "date": date, "title": str, "url": str,
        "favorite": bool, "layout": str,
        "slug": str, "categories": [str], "draft": bool,
        "content_md": str, "source_file": Path,
      }

    Returns None if the file name is not a post name.
    """
    m = POST_FILENAME_RE.match(path.name)
    if not m:
        return None

    file_date_str, slug = m.group(1), m.group(2)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise PostError(f"{path}: not valid UTF-8") from e
    meta, body = split_front_matter(text, source=path)

    if "date" in meta:
        post_dt = coerce_datetime(meta["date"])
    else:
        post_dt = coerce_datetime(file_date_str)
    if post_dt is None:
        raise PostError(f"{path}: cannot read a date from {meta.get('date', file_date_str)!r}")
    post_date = post_dt.date()

    title = meta.get("title")
    if title is None or not str(title).strip():
        title = slug.replace("-", " ").title()

    categories = _categories(meta)
    url = meta.get("permalink") or build_url(permalink, post_date, slug, categories)

    draft = as_bool(meta.get("draft", False)) or meta.get("published", True) is False

    return {
        "_dt": post_dt,
        "date": post_date,
        "title": str(title),
        "url": str(url),
        "favorite": as_bool(meta.get("favorite", False)),
        "layout": str(meta.get("layout") or "post"),
        "slug": slug,
        "categories": categories,
        "draft": draft,
        "content_md": body,
        "source_file": path,
    }


def load_posts(posts_dir: Path, permalink: str = "/:categories/:year/:month/:day/:title.html",
               include_drafts: bool = False):
    """
    Read every post under posts_dir, newest first.

    Sorted on the full date and time; exact ties are ordered by file name,
    newest name first.
    Drafts are skipped unless include_drafts=True.
    """
    if not posts_dir.is_dir():
        raise PostError(f"Posts directory not found: {posts_dir}")

    posts = []
    for path in sorted(posts_dir.iterdir()):
        if not path.is_file() or path.suffix not in (".md", ".markdown"):
            continue
        post = parse_post_file(path, permalink)
        if post is None:
            print(f"WARNING: skipping {path.name} (expected YYYY-MM-DD-title.md)", file=sys.stderr)
            continue
        if post["draft"] and not include_drafts:
            continue
        posts.append(post)

    posts.sort(key=lambda p: (p["_dt"], p["source_file"].name), reverse=True)
    return posts


# -----------------------
# Archive index
# -----------------------

def year_label(post_date) -> str:
    return f"{post_date.year:04d}"


def render_archive_item(post) -> str:
    """Render one <li>; writeups get a suffix and never the favorite class."""
    is_writeup = post.get("layout") == WRITEUP_LAYOUT

    label = html.escape(post["title"], quote=False)
    if is_writeup:
        label += WRITEUP_SUFFIX

    css_attr = ""
    if post.get("favorite") and not is_writeup:
        css_attr = f' class="{FAVORITE_CLASS}"'

    href = html.escape(post["url"])
    return f'  <li{css_attr}><a href="{href}">{label}</a></li>'


def render_archive(posts) -> str:
    """
    Render posts as a year-grouped HTML fragment.

    Posts must already be newest first. A new <h2> is opened whenever the year
    differs from the previous post's year, so unsorted input repeats headings.
    Empty input gives an empty string.
    """
    lines = []
    current_year = None
    list_open = False

    for post in posts:
        year = year_label(post["date"])
        if year != current_year:
            if list_open:
                lines.append("</ul>")
            lines.append(f"<h2>{year}</h2>")
            lines.append("<ul>")
            list_open = True
            current_year = year
        lines.append(render_archive_item(post))

    if list_open:
        lines.append("</ul>")

    if not lines:
        return ""
    return "\n".join(lines) + "\n"


# -----------------------
# Word counts
# -----------------------

def count_words(content_md: str) -> int:
    """Count words in the rendered text of a Markdown body."""
    html_body = markdown.markdown(content_md or "")
    text = BeautifulSoup(html_body, "html.parser").get_text(" ", strip=True)
    return len(text.split())


def total_word_count(posts) -> int:
    return sum((count_words(p.get("content_md", "")) for p in posts), 0)


# -----------------------
# Archive page
# -----------------------

def build_common_head_and_footer(cfg):
    """Return extra_head_html, extra_footer_html strings."""
    extra_head_items = cfg.get("extra_head") or []
    extra_head_html = ""
    if extra_head_items:
        extra_head_html = "\n  " + "\n  ".join(extra_head_items)

    extra_footer_items = cfg.get("extra_footer") or []
    extra_footer_html = ""
    if extra_footer_items:
        extra_footer_html = "\n    " + "\n    ".join(extra_footer_items)

    return extra_head_html, extra_footer_html


def archive_summary(post_count: int, word_count=None) -> str:
    noun = "post" if post_count == 1 else "posts"
    summary = f"{post_count} {noun}"
    if word_count is not None:
        summary += f", {word_count:,} words"
    return summary


def render_archive_page(fragment: str, cfg: dict, post_count: int, word_count=None) -> str:
    """
    Render a full HTML page around the archive fragment.
    """
    site_title = html.escape(cfg["site_title"])
    site_tagline = html.escape(cfg.get("site_tagline", ""))

    extra_head_html, extra_footer_html = build_common_head_and_footer(cfg)

    stylesheet_html = ""
    if cfg.get("stylesheet"):
        stylesheet_html = f'\n  <link rel="stylesheet" href="{html.escape(cfg["stylesheet"])}">'

    if not cfg.get("show_word_count", True):
        word_count = None
    summary = archive_summary(post_count, word_count)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{site_title} – Archive</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">{stylesheet_html}{extra_head_html}
</head>
<body>
<header class="site-header">
  <h1 class="site-title"><a href="/">{site_title}</a></h1>
  <p class="site-tagline">{site_tagline}</p>
</header>

<main class="content">
  <header class="content-header">
    <h1 class="archive-title">Archive</h1>
    <p class="archive-summary">{summary}</p>
  </header>

<div class="archive">
{fragment}</div>
</main>

<footer class="site-footer">
  {extra_footer_html}
</footer>

</body>
</html>
"""


def write_file(path: Path, text: str):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    print(f"Wrote {path}")


def main(argv=None):
    config_path = get_config_path_from_args(argv)
    cfg = load_config(config_path)

    base_dir = config_path.parent
    posts_dir = (base_dir / cfg["posts_dir"]).resolve()
    output_dir = (base_dir / cfg["output_dir"]).resolve()

    try:
        posts = load_posts(
            posts_dir,
            permalink=cfg["permalink"],
            include_drafts=cfg["include_drafts"],
        )
    except PostError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    if not posts:
        print("WARNING: No posts found.", file=sys.stderr)

    fragment = render_archive(posts)

    word_count = total_word_count(posts) if cfg["show_word_count"] else None
    page = render_archive_page(fragment, cfg, len(posts), word_count)
    write_file(output_dir / cfg["archive_filename"], page)

    if cfg["fragment_path"]:
        write_file((base_dir / cfg["fragment_path"]).resolve(), fragment)


if __name__ == "__main__":
    main()
