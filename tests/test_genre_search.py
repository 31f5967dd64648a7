import httpx
import pytest

from creatorcore.db.enums import ConfidenceEnum
from creatorcore.errors import DeadlineExceededError, ResolverError
from creatorcore.genre.search import BraveGenreResolver, GenreResolution, score_search_text


def _resolver(handler) -> BraveGenreResolver:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return BraveGenreResolver(api_key="brave-test-key", url="https://search.test/web", client=client)


def test_resolve_scores_result_snippets():
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["q"] = request.url.params.get("q")
        seen["count"] = request.url.params.get("count")
        seen["token"] = request.headers.get("X-Subscription-Token")
        return httpx.Response(
            200,
            json={
                "web": {
                    "results": [
                        {"title": "Burna Boy - Afrobeats", "description": "Nigerian singer and afropop act."},
                        {"title": "Top afrobeats albums", "description": ""},
                    ]
                }
            },
        )

    resolution = _resolver(handler).resolve("Burna Boy")

    assert resolution == GenreResolution("Afrobeats", ConfidenceEnum.high)
    assert seen == {"q": '"Burna Boy" music genre', "count": "5", "token": "brave-test-key"}


def test_resolve_returns_none_without_signal():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"web": {"results": [{"title": "Tour dates", "description": "Tickets"}]}})

    assert _resolver(handler).resolve("Somebody") is None


def test_resolve_timeout_is_deadline_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(DeadlineExceededError):
        _resolver(handler).resolve("Burna Boy")


def test_resolve_http_error_is_resolver_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="upstream down")

    with pytest.raises(ResolverError):
        _resolver(handler).resolve("Burna Boy")


def test_resolver_requires_api_key():
    with pytest.raises(ValueError):
        BraveGenreResolver(api_key="")


def test_score_search_text_confidence_levels():
    assert score_search_text("") is None
    assert score_search_text("a country singer from nashville") == GenreResolution("Country", ConfidenceEnum.medium)
    assert score_search_text("folk") == GenreResolution("Folk", ConfidenceEnum.low)


@pytest.mark.parametrize(
    "body",
    [{"web": ["unexpected"]}, {"web": {"results": {"title": "Pop"}}}, [{"title": "Pop"}], "pop"],
)
def test_resolve_rejects_unexpected_payload_shapes(body):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    with pytest.raises(ResolverError, match="unexpected payload"):
        _resolver(handler).resolve("Burna Boy")


def test_resolve_treats_missing_web_section_as_no_result():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"query": {"original": "Somebody"}})

    assert _resolver(handler).resolve("Somebody") is None
