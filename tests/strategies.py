"""
Shared hypothesis strategies.
"""
from datetime import timedelta

from hypothesis import strategies as st

from core.entities import Item
from conftest import NOW

PLAIN_WORDS = [
    "model", "release", "api", "tokens", "context", "window", "faster", "pricing", "the", "new",
    "developers", "agents", "vision", "latency", "support", "for", "and", "with", "launch", "update",
]
CLICKBAIT_WORDS = ["shocking", "insane", "viral", "breaking", "game-changing", "secret", "Amazing", "URGENT"]
EMOJIS = ["🚀", "🆕", "🔥", "✨", "🤖", "📣", "⭐", "⬆️", "🫠", "🪄", "🫡", "‼️", "⁉", "〰", "〽️"]

urls = st.builds(
    lambda host, path: f"https://{host}/{path}",
    st.sampled_from(["openai.com", "anthropic.com", "blog.google", "techcrunch.com", "example.org"]),
    st.text(alphabet="abcdefghij-", min_size=1, max_size=12),
)

vendor_products = st.sampled_from([
    ("openai", "gpt-4"), ("openai", "dall-e"), ("anthropic", "claude"), ("google", "gemini"), ("meta", "llama"),
])

titles = st.lists(st.sampled_from(PLAIN_WORDS), min_size=2, max_size=10).map(" ".join)


@st.composite
def items(draw):
    vendor, product = draw(vendor_products)
    return Item.create(
        source="rss",
        url=draw(urls),
        title=draw(titles),
        published_at=NOW - timedelta(hours=draw(st.floats(min_value=0, max_value=120))),
        vendor=vendor,
        product=product,
    )


plain_text = st.lists(st.sampled_from(PLAIN_WORDS), min_size=0, max_size=120).map(" ".join)

noisy_text = st.lists(
    st.one_of(st.sampled_from(PLAIN_WORDS), st.sampled_from(CLICKBAIT_WORDS), st.sampled_from(EMOJIS)),
    min_size=0,
    max_size=150,
).map(" ".join)
