"""
Test the Faker class and its helpers.
"""

import pytest
import requests
import requests_mock

from . import faker


# pylint: disable=missing-timeout

class TeapotError(faker.FakerException):
    status_code = 418


class WidgetFake(faker.Faker):
    """
    A fake API of widgets, for these tests.
    """
    def __init__(self, host):
        super().__init__(host)
        self.widgets = {}
        self.add_middleware(self.no_secrets_middleware)

    def no_secrets_middleware(self, request, context):
        """Refuse any request with "secret" in the query string."""
        if "secret" in request.query:
            context.status_code = 403
            return {"message": "Forbidden"}
        return None

    @faker.route(r"/widgets/(?P<name>[^/]+)")
    def _get_widget(self, match, _request, _context):
        return {"name": match["name"], "size": self.widgets.get(match["name"])}

    @faker.route(r"/widgets/(?P<name>[^/]+)", "PUT")
    def _put_widget(self, match, request, _context):
        self.widgets[match["name"]] = request.json()["size"]
        return {"stored": match["name"]}

    @faker.route(r"/widgets/(?P<name>[^/]+)", "DELETE")
    def _delete_widget(self, match, _request, context):
        self.widgets.pop(match["name"], None)
        context.status_code = 204

    @faker.route(r"/teapot")
    def _get_teapot(self, _match, _request, _context):
        raise TeapotError("I'm a teapot")

    @faker.route(r"/readme", data_type="text")
    def _get_readme(self, _match, _request, _context):
        return "# Widgets\n"


@pytest.fixture
def widget_fake():
    mocker = requests_mock.Mocker(real_http=False, case_sensitive=True)
    mocker.start()
    # Another host, to check that its requests aren't counted.
    mocker.get("https://elsewhere.com/", text="")
    try:
        the_fake = WidgetFake(host="https://widgets.com")
        the_fake.install_mocks(mocker)
        yield the_fake
    finally:
        mocker.stop()


def test_json_route(widget_fake):
    widget_fake.widgets["gear"] = 12
    resp = requests.get("https://widgets.com/widgets/gear")
    assert resp.status_code == 200
    assert resp.json() == {"name": "gear", "size": 12}


def test_query_string_is_allowed(widget_fake):
    resp = requests.get("https://widgets.com/widgets/gear?verbose=1")
    assert resp.status_code == 200
    assert resp.json()["name"] == "gear"


def test_put_changes_state(widget_fake):
    resp = requests.put("https://widgets.com/widgets/cog", json={"size": 3})
    assert resp.json() == {"stored": "cog"}
    assert widget_fake.widgets == {"cog": 3}


def test_text_route(widget_fake):
    resp = requests.get("https://widgets.com/readme")
    assert resp.text == "# Widgets\n"


def test_exception_becomes_response(widget_fake):
    resp = requests.get("https://widgets.com/teapot")
    assert resp.status_code == 418
    assert resp.json() == {"error": "I'm a teapot"}


def test_middleware_can_stop_a_request(widget_fake):
    resp = requests.get("https://widgets.com/widgets/gear?secret=1")
    assert resp.status_code == 403
    assert resp.json() == {"message": "Forbidden"}


@pytest.mark.parametrize("method, url", [
    ("GET", "https://widgets.com/gadgets/1"),
    ("POST", "https://widgets.com/widgets/gear"),
    ("GET", "http://widgets.com/widgets/gear"),
    ("GET", "https://widgets.com/widgets/gear/parts"),
])
def test_no_address(widget_fake, method, url):
    with pytest.raises(requests_mock.NoMockAddress):
        requests.request(method, url)


def test_requests_made(widget_fake):
    requests.get("https://widgets.com/widgets/a")
    requests.put("https://widgets.com/widgets/b", json={"size": 1})
    requests.get("https://widgets.com/widgets/b?x=1")
    requests.delete("https://widgets.com/widgets/a")
    requests.get("https://elsewhere.com/")
    assert widget_fake.requests_made() == [
        ("/widgets/a", "GET"),
        ("/widgets/b", "PUT"),
        ("/widgets/b?x=1", "GET"),
        ("/widgets/a", "DELETE"),
    ]
    assert widget_fake.requests_made(method="GET") == [
        ("/widgets/a", "GET"),
        ("/widgets/b?x=1", "GET"),
    ]
    assert widget_fake.requests_made(r"/b$") == [
        ("/widgets/b", "PUT"),
        ("/widgets/b?x=1", "GET"),
    ]


def test_reset_mock(widget_fake):
    requests.get("https://widgets.com/widgets/a")
    widget_fake.reset_mock()
    requests.delete("https://widgets.com/widgets/a")
    assert widget_fake.requests_made() == [("/widgets/a", "DELETE")]


def test_readonly(widget_fake):
    requests.get("https://widgets.com/widgets/a")
    requests.get("https://elsewhere.com/")
    widget_fake.assert_readonly()


def test_not_readonly(widget_fake):
    requests.get("https://widgets.com/widgets/a")
    requests.delete("https://widgets.com/widgets/a")
    with pytest.raises(AssertionError):
        widget_fake.assert_readonly()
