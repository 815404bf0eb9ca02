from booking_scraper.services.backends.base import (
    detect_block,
    html_title,
    is_error_redirect,
    mentions_robot_check,
)

LONG_PAGE = "<html>" + "a" * 6000 + "</html>"


def test_error_redirect_is_blocked():
    url = "https://www.booking.com/index.html?errorc_searchstring_not_found=ss"

    assert is_error_redirect(url) is True
    assert detect_block(LONG_PAGE, "Booking.com", url, 5000) == "redirected_to_error_page"


def test_plain_index_is_not_error_redirect():
    assert is_error_redirect("https://www.booking.com/index.html") is False


def test_access_denied_title():
    assert detect_block(LONG_PAGE, "Access Denied", "https://www.booking.com/hotel/x.html", 5000) == (
        "access_denied_title"
    )
    assert detect_block(LONG_PAGE, "Just a moment...", None, 5000) == "access_denied_title"


def test_short_content():
    assert detect_block("<html></html>", "Hotel", "https://www.booking.com/hotel/x.html", 5000) == (
        "content_too_short"
    )


def test_usable_page():
    assert detect_block(LONG_PAGE, "Marina View Hotel", "https://www.booking.com/hotel/x.html", 5000) is None


def test_html_title_decodes_entities():
    assert html_title("<title>\n Caf&eacute; &amp; Rooms </title>") == "Café & Rooms"
    assert html_title("<p>no title</p>") is None


def test_robot_check_phrases():
    assert mentions_robot_check("<p>Are you a robot?</p>") is True
    assert mentions_robot_check("<p>Marina View Hotel</p>") is False
