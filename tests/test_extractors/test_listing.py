from booking_scraper.extractors.listing import extract_listings

SEARCH_HTML = """
<html><body>
<div data-testid="property-card">
  <a data-testid="title-link"
     href="/hotel/ae/marina-view.html?aid=304142&amp;label=gen173&amp;checkin=2025-03-11&amp;checkout=2025-03-13&amp;group_adults=2&amp;no_rooms=1&amp;group_children=0#hotelTmpl">
    <div data-testid="title">Marina View Hotel</div>
  </a>
  <img data-testid="image" src="https://cf.bstatic.com/xdata/images/hotel/square600/1.jpg?k=abc">
  <span data-testid="address">Dubai Marina</span>
  <span data-testid="distance">1.2 km from downtown</span>
  <div data-testid="review-score">
    <div>Scored 8.4</div><div>8.4</div><div>Very good</div><div>1,567 reviews</div>
  </div>
  <span data-testid="price-and-discounted-price">US$1,234</span>
</div>
<div data-testid="property-card">
  <div class="badge">Sponsored</div>
  <span data-testid="price-and-discounted-price">US$99</span>
</div>
<div data-testid="property-card">
  <h3>Palm Suites</h3>
  <a href="https://www.booking.com/hotel/ae/palm-suites.html?aid=1&amp;checkin=2025-03-11">Palm Suites</a>
  <div aria-label="Scored 9.1 Wonderful">9.1</div>
  <div>Jumeirah Show on map</div>
  <div>€ 450 per night 2 nights, 2 adults</div>
</div>
</body></html>
"""

LEGACY_HTML = """
<html><body>
<div class="sr_property_block" data-hotelid="42">
  <span class="sr-hotel__name">Old Town Inn</span>
  <div class="sr_card_address_line">Old Town, Dubai</div>
  <div class="bui-review-score__badge">7,9</div>
  <div class="bui-price-display__value">AED 560</div>
</div>
</body></html>
"""

JSON_PRICE_HTML = """
<html><body>
<div data-testid="property-card" data-extra='{"displayedPrice":{"amount":"1,020","currency":"GBP"}}'>
  <div data-testid="title">Harbour House</div>
</div>
</body></html>
"""


def test_extract_listings_drops_nameless_cards_and_keeps_order():
    hotels = extract_listings(SEARCH_HTML)

    assert [h.name for h in hotels] == ["Marina View Hotel", "Palm Suites"]


def test_extract_listings_modern_card_fields():
    hotel = extract_listings(SEARCH_HTML)[0]

    assert hotel.link == (
        "https://www.booking.com/hotel/ae/marina-view.html"
        "?checkin=2025-03-11&checkout=2025-03-13&group_adults=2&no_rooms=1&group_children=0"
    )
    assert hotel.picture_url == "https://cf.bstatic.com/xdata/images/hotel/square600/1.jpg?k=abc"
    assert hotel.rating == 8.4
    assert hotel.reviews_count == 1567
    assert hotel.location == "Dubai Marina - 1.2 km from downtown"
    assert hotel.price_per_night == "1234"
    assert hotel.currency == "USD"


def test_extract_listings_text_fallbacks():
    hotel = extract_listings(SEARCH_HTML)[1]

    assert hotel.link == "https://www.booking.com/hotel/ae/palm-suites.html?checkin=2025-03-11"
    assert hotel.rating == 9.1
    assert hotel.location == "Jumeirah"
    assert hotel.price_per_night == "450"
    assert hotel.currency == "EUR"


def test_extract_listings_legacy_layout():
    hotels = extract_listings(LEGACY_HTML)

    assert len(hotels) == 1
    hotel = hotels[0]
    assert hotel.name == "Old Town Inn"
    assert hotel.location == "Old Town, Dubai"
    assert hotel.rating == 7.9
    assert hotel.price_per_night == "560"
    assert hotel.currency == "AED"


def test_extract_listings_price_from_embedded_json():
    hotel = extract_listings(JSON_PRICE_HTML)[0]

    assert hotel.price_per_night == "1020"


def test_extract_listings_empty_page():
    assert extract_listings("<html><body><p>No properties found</p></body></html>") == []


def test_extract_listings_unscored_card_keeps_rating_empty():
    html = """
    <div data-testid="property-card">
      <div data-testid="title">New Opening Hotel</div>
      <div data-testid="review-score"><div>Review score</div><div>1,234 reviews</div></div>
    </div>
    """

    hotel = extract_listings(html)[0]

    assert hotel.rating is None
    assert hotel.reviews_count == 1234
