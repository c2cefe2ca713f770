import pytest

from site_crawler.parsing.html_extractor import (
    MAX_CONTENT_CHARS,
    MAX_EXTERNAL_LINKS,
    MAX_HEADINGS,
    extract,
    extract_links,
    extract_text,
    extract_title,
)


BASE = "https://example.com"

FULL_PAGE = """
<html>
<head>
  <title>  Acme &amp; Sons
  </title>
  <meta content="Tools for builders, since 1990" name="description">
  <meta name='keywords' content='tools, hardware , ,builders'>
  <link href="/static/favicon.ico" rel="shortcut icon">
  <meta property="og:image" content="/img/cover.png" />
  <script>var tracking = "<h1>not a heading</h1>";</script>
  <style>.hero { color: red; }</style>
</head>
<body>
  <header><a href="/login">Sign in</a> Top banner</header>
  <nav><a href="/menu">Menu</a></nav>
  <h1>Welcome <span>home</span></h1>
  <h2 class="sub">Our   story</h2>
  <h4>Ignored level</h4>
  <p>We&nbsp;make hammers &lt;and&gt; nails.</p>
  <a href="/about">About</a>
  <a href='/about/'>About again</a>
  <a href="/about?utm_source=x">Tracked about</a>
  <a href="https://other.com/x">Partner</a>
  <a href="#top">Top</a>
  <a href="mailto:hi@example.com">Mail</a>
  <footer>Copyright Acme</footer>
</body>
</html>
"""


def test_extract_reads_metadata_in_any_attribute_order():
    result = extract(FULL_PAGE, BASE)

    assert result.title == "Acme & Sons"
    assert result.description == "Tools for builders, since 1990"
    assert result.keywords == ["tools", "hardware", "builders"]
    assert result.favicon == "https://example.com/static/favicon.ico"
    assert result.og_image == "https://example.com/img/cover.png"
    assert result.headings == ["Welcome home", "Our story"]


def test_extract_classifies_links():
    result = extract(FULL_PAGE, BASE)

    # /login is a skipped path; the nav link still counts as a page link
    assert result.internal_links == [
        "https://example.com/menu",
        "https://example.com/about",
    ]
    assert result.external_links == ["https://other.com/x"]
    assert "https://example.com/about?utm_source=x" in result.links
    assert not any(link.startswith("mailto:") for link in result.links)
    assert len(result.links) == len(set(result.links))


def test_extract_text_drops_chrome_scripts_and_decodes_entities():
    result = extract(FULL_PAGE, BASE)

    assert "Top banner" not in result.content
    assert "Menu" not in result.content
    assert "Copyright" not in result.content
    assert "tracking" not in result.content
    assert "color: red" not in result.content
    assert "We make hammers <and> nails." in result.content
    assert result.word_count == len(result.content.split())


def test_seed_scenario_keeps_a_single_internal_link():
    html = (
        '<a href="/about">a</a>'
        '<a href="https://other.com/x">b</a>'
        '<a href="/about?utm_source=x">c</a>'
    )
    all_links, internal, external = extract_links(BASE, html)

    assert internal == ["https://example.com/about"]
    assert external == ["https://other.com/x"]
    assert len(all_links) == 3


def test_description_keeps_apostrophes_inside_double_quotes():
    html = "<meta name=\"description\" content=\"Bob's hardware shop\">"
    assert extract(html, BASE).description == "Bob's hardware shop"


def test_limits_are_applied():
    headings = "".join(f"<h2>Heading {i}</h2>" for i in range(40))
    external = "".join(f'<a href="https://site{i}.org/">x</a>' for i in range(80))
    filler = "word " * 5000

    result = extract(f"<body>{headings}{external}<p>{filler}</p></body>", BASE)

    assert len(result.headings) == MAX_HEADINGS
    assert result.headings[0] == "Heading 0"
    assert len(result.external_links) == MAX_EXTERNAL_LINKS
    assert len(result.content) <= MAX_CONTENT_CHARS


@pytest.mark.parametrize(
    "html",
    [
        "",
        "<p>just a fragment",
        "<html><head></head><body></body></html>",
        "<title>unclosed <meta name=description content=",
        "<a href='/x' <<< >>> </a",
    ],
)
def test_extract_never_raises_on_malformed_input(html):
    result = extract(html, BASE)

    assert result.description is None
    assert result.favicon is None
    assert result.og_image is None
    assert result.keywords == []
    assert result.word_count == len(result.content.split())


def test_missing_title_is_none():
    assert extract_title("<html><head></head><body></body></html>") is None
    assert extract_title("<title>   </title>") is None
    assert extract("<p>Hello world</p>", BASE).title is None


def test_extract_text_handles_numeric_entities_and_comments():
    html = "<p>caf&#233; &#x263A;</p><!-- hidden note --><noscript>enable js</noscript>"
    assert extract_text(html) == "café ☺"


def test_page_meta_omits_favicon():
    result = extract(FULL_PAGE, BASE)

    assert "favicon" in result.website_meta()
    assert "favicon" not in result.page_meta()
    assert result.page_meta()["internal_links"] == result.internal_links
