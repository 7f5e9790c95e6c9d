from __future__ import annotations

from conftest import read_fixture

from bookmirror.dedupe import dedupe_by_title
from bookmirror.extractors.detail import extract_detail
from bookmirror.extractors.listing import extract_records
from bookmirror.extractors.schemas import PageSnapshot

COLLECTION_URL = "https://www.worldofbooks.com/en-gb/collections/history-books"
PRODUCT_URL = "https://www.worldofbooks.com/en-gb/products/the-great-escape-9780393325799"


def _records(html: str, url: str = COLLECTION_URL):
    return extract_records(PageSnapshot(url=url, html=html))


def test_priced_card_yields_title_and_price() -> None:
    html = """
    <ul><li class="card">
      <a href="/en-gb/products/book-title"><h3>Book Title</h3></a>
      <p>Paperback, used</p>
      <span class="price">£12.99</span>
    </li></ul>
    """
    records = _records(html)

    assert len(records) == 1
    assert records[0].title == "Book Title"
    assert records[0].price == "£12.99"
    assert records[0].source_id == "book-title"
    assert records[0].product_url == "https://www.worldofbooks.com/en-gb/products/book-title"


def test_card_without_currency_amount_is_rejected() -> None:
    html = """
    <ul><li><a href="/en-gb/products/book-title"><h3>Book Title</h3></a>
    <span>Out of stock</span></li></ul>
    """
    assert _records(html) == []


def test_title_falls_back_to_title_class_then_anchor_text() -> None:
    html = """
    <ul>
      <li><a href="/p/1">img</a><div class="product-title">Classed Title</div>£5.00</li>
      <li><a href="/p/2">  Anchor
         Title  </a><span>£6.00</span></li>
    </ul>
    """
    titles = [record.title for record in _records(html)]
    assert titles == ["Classed Title", "Anchor Title"]


def test_short_titles_are_rejected_as_noise() -> None:
    html = "<ul><li><a href='/p/1'>X</a><span>£1.00</span></li></ul>"
    assert _records(html) == []


def test_image_prefers_lazy_load_attributes() -> None:
    html = """
    <ul>
      <li><a href="/p/1"><img src="/ph.gif" data-src="/real.jpg"></a><h3>Lazy One</h3>£1.00</li>
      <li><a href="/p/2"><img src="/ph.gif" srcset="/a.jpg 1x, /b.jpg 2x"></a><h3>Srcset Two</h3>£2.00</li>
      <li><a href="/p/3"><img src="/plain.jpg"></a><h3>Plain Three</h3>£3.00</li>
    </ul>
    """
    images = [record.image_url for record in _records(html)]
    assert images == [
        "https://www.worldofbooks.com/real.jpg",
        "https://www.worldofbooks.com/a.jpg",
        "https://www.worldofbooks.com/plain.jpg",
    ]


def test_item_class_div_is_used_as_card() -> None:
    html = """
    <section><div class="ProductItem">
      <div><div><a href="/p/deep">Deeply Nested</a></div></div>
      <span>£7.25</span>
    </div></section>
    """
    records = _records(html)
    assert [(r.title, r.price) for r in records] == [("Deeply Nested", "£7.25")]


def test_anchor_without_container_is_discarded() -> None:
    assert _records("<a href='/p/1'>Lonely Book £5.00</a>") == []


def test_script_text_does_not_count_as_price() -> None:
    html = """
    <div><ul><li><a href="/p/1">Scripted Book</a>
    <script>var price = "£9.99";</script></li></ul></div>
    """
    assert _records(html) == []


def test_empty_snapshot_yields_nothing() -> None:
    assert extract_records(PageSnapshot(url=COLLECTION_URL, html="", loaded=False)) == []


def test_collection_fixture_extraction_and_dedupe() -> None:
    records = _records(read_fixture("collection.html"))

    titles = [record.title for record in records]
    assert "Sold Out Title" not in titles
    assert "Fiction" not in titles
    assert titles.count("The Great Escape") == 3

    first = records[0]
    assert first.price == "£4.49"
    assert first.image_url == "https://images.example.com/great-escape.jpg"

    unique = dedupe_by_title(records)
    assert [record.title for record in unique] == [
        "The Great Escape",
        "A Short History of Nearly Everything",
    ]
    assert unique[0].price == "£3.50"
    assert unique[0].product_url.endswith("/the-great-escape-promo")
    assert unique[1].price == "£3.99"
    assert unique[1].image_url == "https://images.example.com/short-history-300.jpg"


def test_detail_fixture_extraction() -> None:
    record = extract_detail(PageSnapshot(url=PRODUCT_URL, html=read_fixture("product.html")))

    assert record.description == (
        "The true story of the most audacious escape of the Second World War."
    )
    assert record.author == "Paul Brickhill"
    assert record.publisher == "W. W. Norton & Company"
    assert record.isbn == "9780393325799"


def test_detail_falls_back_to_meta_description_and_truncates() -> None:
    html = f'<html><head><meta name="description" content="{"x" * 1500}"></head><body></body></html>'

    record = extract_detail(PageSnapshot(url=PRODUCT_URL, html=html), max_length=1000)

    assert record.description == "x" * 1000
    assert record.isbn is None


def test_detail_of_blank_page_is_empty() -> None:
    record = extract_detail(PageSnapshot(url=PRODUCT_URL, html="<html><body></body></html>"))
    assert record.empty


def test_detail_labels_split_across_child_elements() -> None:
    html = (
        "<html><body><ul>"
        "<li><span>Author:</span> <a href='/a/jane-doe'>Jane Doe</a></li>"
        "<li><strong>ISBN-13</strong><span>9780000000001</span></li>"
        "<li><b>Publisher</b>: <span>Penguin</span></li>"
        "</ul></body></html>"
    )

    record = extract_detail(PageSnapshot(url=PRODUCT_URL, html=html))

    assert record.author == "Jane Doe"
    assert record.isbn == "9780000000001"
    assert record.publisher == "Penguin"


def test_detail_label_without_value_is_skipped() -> None:
    html = (
        "<html><body><ul>"
        "<li>Author:</li>"
        "<li>ISBN-13</li>"
        "</ul>"
        "<dl><dt>Author</dt><dd>Paul Brickhill</dd></dl>"
        "</body></html>"
    )

    record = extract_detail(PageSnapshot(url=PRODUCT_URL, html=html))

    assert record.author == "Paul Brickhill"
    assert record.isbn is None
