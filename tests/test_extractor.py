import httpx

from conftest import run
from ingestion.extractor import ArticleExtractor, html_to_text

ARTICLE = """
<html><head><title>GPT-4.1 is here</title><script>var x = 1;</script></head>
<body>
<nav><p>Menu item</p></nav>
<article>
<p>GPT-4.1 brings a larger context window.</p>
<p>Pricing drops for input tokens.</p>
</article>
<footer><p>Footer text</p></footer>
</body></html>
"""


def test_html_to_text_prefers_article_paragraphs():
    title, text = html_to_text(ARTICLE)
    assert title == "GPT-4.1 is here"
    assert text == "GPT-4.1 brings a larger context window.\n\nPricing drops for input tokens."


def test_html_to_text_without_paragraphs_uses_container_text():
    _, text = html_to_text("<html><body><main><div>Just a div</div></main></body></html>")
    assert text == "Just a div"


def test_extract_success():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, text=ARTICLE)))
    article = run(ArticleExtractor(client=client).extract("https://openai.com/blog/gpt-4-1", "Fallback"))
    assert article.success and not article.fallback_used
    assert article.title == "GPT-4.1 is here"
    assert "larger context window" in article.text


def test_extract_falls_back_to_title_after_retries():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    article = run(ArticleExtractor(max_retries=2, client=client).extract("https://openai.com/x", "GPT-4.1 launch"))
    assert not article.success and article.fallback_used
    assert article.text == "GPT-4.1 launch"
    assert len(calls) == 2
