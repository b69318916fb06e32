from build_archive import count_words, total_word_count


def test_count_words_ignores_markdown_markup() -> None:
    assert count_words("Hello **world**\n\n- one\n- two") == 4


def test_count_words_keeps_inline_code_words() -> None:
    assert count_words("Use `gem install rspec` now.") == 5


def test_count_words_empty() -> None:
    assert count_words("") == 0
    assert count_words(None) == 0


def test_total_word_count_is_sum_of_posts() -> None:
    posts = [
        {"content_md": "One two three."},
        {"content_md": "# Four\n\nfive"},
        {},
    ]

    assert total_word_count(posts) == 5
    assert total_word_count([]) == 0
