"""Unit tests for HTML field helpers."""

from dresscheck.tools.html_fields import (
    PRIORITY_JSON_LD,
    PRIORITY_OG,
    BasicInfo,
    absolute_url,
    best_image,
    find_price_text,
    is_junk_image,
    json_ld_info,
    largest_from_srcset,
    largest_images,
    make_soup,
    meta_info,
    page_title,
    select_color,
    select_images,
    select_text,
)

BASE_URL = "https://www.tiendamoda.es/mujer/vestido-negro"

JSON_LD_PAGE = """
<html><head>
<script type="application/ld+json">
{"@context": "https://schema.org", "@graph": [
  {"@type": "BreadcrumbList", "name": "Mujer"},
  {"@type": "Product", "name": "Vestido midi satinado", "color": "Verde",
   "image": ["/img/vestido-1.jpg", "/img/vestido-2.jpg"],
   "brand": {"@type": "Brand", "name": "Tienda Moda"},
   "description": "Vestido midi de satén",
   "offers": {"@type": "Offer", "price": "59.95", "priceCurrency": "EUR"}}
]}
</script>
<script type="application/ld+json">{not valid json</script>
</head><body></body></html>
"""


def test_json_ld_product_in_graph():
    info = json_ld_info(make_soup(JSON_LD_PAGE), BASE_URL)
    assert info.name == "Vestido midi satinado"
    assert info.image_url == "https://www.tiendamoda.es/img/vestido-1.jpg"
    assert info.price == "59.95"
    assert info.currency == "EUR"
    assert info.color == "Verde"
    assert info.brand == "Tienda Moda"
    assert info.images == [("https://www.tiendamoda.es/img/vestido-1.jpg", PRIORITY_JSON_LD)]


def test_json_ld_missing_returns_empty_info():
    info = json_ld_info(make_soup("<html></html>"), BASE_URL)
    assert info == BasicInfo()


def test_meta_info(product_page_html):
    info = meta_info(make_soup(product_page_html), BASE_URL)
    assert info.name == "Vestido Negro"
    assert info.image_url == "https://x/y.jpg"
    assert info.price == "45,95"
    assert info.images == [("https://x/y.jpg", PRIORITY_OG)]


def test_absolute_url():
    assert absolute_url("//cdn.shop.es/a.jpg", BASE_URL) == "https://cdn.shop.es/a.jpg"
    assert absolute_url("/a.jpg", BASE_URL) == "https://www.tiendamoda.es/a.jpg"
    assert absolute_url("http://cdn.shop.es/a.jpg", BASE_URL) == "https://cdn.shop.es/a.jpg"
    assert absolute_url("data:image/png;base64,AAAA", BASE_URL) == "data:image/png;base64,AAAA"
    assert absolute_url(None, BASE_URL) is None


def test_junk_images():
    assert is_junk_image("https://shop.es/static/logo.png")
    assert is_junk_image("https://shop.es/sprite-icons.png")
    assert is_junk_image("https://shop.es/badge.svg?v=2")
    assert not is_junk_image("https://shop.es/products/vestido.jpg")
    assert not is_junk_image("data:image/png;base64,AAAA")


def test_largest_from_srcset():
    srcset = "/a-400.jpg 400w, /a-1200.jpg 1200w, /a-800.jpg 800w"
    assert largest_from_srcset(srcset) == "/a-1200.jpg"


def test_best_image_prefers_priority_then_order():
    candidates = [("https://a/1.jpg", 10), ("https://a/2.jpg", 15), ("https://a/3.jpg", 15), ("https://a/logo.png", 20)]
    assert best_image(candidates) == "https://a/2.jpg"
    assert best_image([]) is None


def test_select_text_and_color():
    soup = make_soup(
        """
        <div class="product-name"><h1>  Falda   plisada </h1></div>
        <span class="selected-color" data-color="Azul marino">Color</span>
        <input class="price" value="39,95 €">
        """
    )
    assert select_text(soup, (".missing", ".product-name h1")) == "Falda plisada"
    assert select_text(soup, ("input.price",)) == "39,95 €"
    assert select_color(soup, (".selected-color",)) == "Azul marino"
    assert select_text(soup, ("[[invalid",)) is None


def test_select_images_resolves_and_skips_junk():
    soup = make_soup(
        """
        <div class="gallery">
          <img src="/logo.png">
          <img srcset="/p-400.jpg 400w, /p-1600.jpg 1600w">
          <img data-src="//cdn.shop.es/p-2.jpg">
        </div>
        """
    )
    images = select_images(soup, (".gallery img",), BASE_URL, 10)
    assert images == [("https://www.tiendamoda.es/p-1600.jpg", 10), ("https://cdn.shop.es/p-2.jpg", 10)]


def test_heuristics():
    soup = make_soup(
        """
        <html><head><title>Blusa de lino | Tienda</title></head><body>
          <script>var price = "€ 1.000";</script>
          <img src="/small.jpg" width="50" height="50">
          <img src="/big.jpg" width="800" height="1200">
          <p>Precio 29,95 €</p>
        </body></html>
        """
    )
    assert find_price_text(soup) == "29,95 €"
    assert largest_images(soup, BASE_URL)[0] == ("https://www.tiendamoda.es/big.jpg", 5)
    assert page_title(soup) == "Blusa de lino"


def test_basic_info_merge_keeps_existing_values():
    first = BasicInfo(name="Vestido", images=[("https://a/1.jpg", 15)])
    second = BasicInfo(name="Otro", price="10", images=[("https://a/2.jpg", 10)])
    merged = first.merge(second)
    assert merged.name == "Vestido"
    assert merged.price == "10"
    assert merged.images == [("https://a/1.jpg", 15), ("https://a/2.jpg", 10)]
    assert merged.to_dict()["imageUrl"] is None
