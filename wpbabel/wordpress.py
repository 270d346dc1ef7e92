"""WordPress REST API access: the destination store for translated pages."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import requests

from .errors import DestinationAuthenticationError, DestinationError
from .structures import PageMetadata

logger = logging.getLogger(__name__)

API_PREFIX = "wp-json/wp/v2/"
DEFAULT_TIMEOUT = 30.0

# Fields generated by WordPress that a create request must not send back.
READ_ONLY_FIELDS = frozenset(
    {
        "id", "date", "date_gmt", "guid", "link", "modified", "modified_gmt",
        "type", "permalink_template", "generated_slug", "_links", "_embedded",
    }
)


@dataclass
class WordPressCredentials:
    """Site address and application password used for basic auth."""

    site_url: str
    username: str
    app_password: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.site_url.endswith("/"):
            self.site_url = f"{self.site_url}/"


def _rendered(value: Any) -> str:
    """Prefer the raw form of a WordPress text field over the rendered one."""

    if isinstance(value, Mapping):
        raw = value.get("raw")
        if isinstance(raw, str):
            return raw
        return str(value.get("rendered") or "")
    return "" if value is None else str(value)


@dataclass
class WordPressPage:
    """A page as returned by the REST API.

    Every field that is neither modelled here nor generated by the server is
    kept in ``metadata`` exactly as received (Elementor layout data, custom
    meta, template, parent...) so it can be forwarded untouched.
    """

    id: int
    title: str
    content: str
    slug: str = ""
    status: str = ""
    link: str = ""
    metadata: PageMetadata = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "WordPressPage":
        title = _rendered(payload.get("title"))
        if not isinstance(payload.get("title"), Mapping) or "raw" not in payload["title"]:
            title = html.unescape(title)
        metadata = {
            key: value
            for key, value in payload.items()
            if key not in READ_ONLY_FIELDS
            and key not in {"title", "content", "slug", "status"}
        }
        return cls(
            id=int(payload.get("id", 0)),
            title=title,
            content=_rendered(payload.get("content")),
            slug=str(payload.get("slug") or ""),
            status=str(payload.get("status") or ""),
            link=str(payload.get("link") or ""),
            metadata=metadata,
        )


def build_translated_page(
    page: WordPressPage,
    translated_html: str,
    language_name: str,
    language_code: str,
) -> Dict[str, Any]:
    """Create-page payload for the translated copy of ``page``."""

    payload: Dict[str, Any] = dict(page.metadata)
    payload.update(
        {
            "title": f"{page.title} - {language_name}",
            "content": translated_html,
            "status": "draft",
        }
    )
    if page.slug:
        payload["slug"] = f"{page.slug}-{language_code.lower()}"
    return payload


class WordPressClient:
    """Thin client for the pages and users endpoints of the REST API."""

    def __init__(
        self,
        credentials: WordPressCredentials,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.credentials = credentials
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (credentials.username, credentials.app_password)

    def _url(self, path: str) -> str:
        return f"{self.credentials.site_url}{API_PREFIX}{path}"

    def _request(self, method: str, path: str, *, action: str, **kwargs: Any) -> Any:
        try:
            response = self.session.request(
                method, self._url(path), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise DestinationError(f"Failed to {action}: {exc}") from exc

        if response.status_code in (401, 403):
            raise DestinationAuthenticationError(
                f"Failed to {action}: {response.status_code} {response.reason}. "
                "Check the username and application password.",
                status_code=response.status_code,
            )
        if not response.ok:
            detail = ""
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, Mapping) and body.get("message"):
                detail = f" {body['message']}"
            raise DestinationError(
                f"Failed to {action}: {response.status_code} {response.reason}.{detail}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise DestinationError(f"Failed to {action}: response was not JSON") from exc

    def authenticate(self) -> Dict[str, Any]:
        """Check the credentials and return the current user."""

        user = self._request("GET", "users/me", action="authenticate")
        logger.info("Authenticated against %s", self.credentials.site_url)
        return user

    def list_pages(self, *, per_page: int = 100) -> List[WordPressPage]:
        payload = self._request(
            "GET", "pages", action="fetch pages", params={"per_page": per_page}
        )
        return [WordPressPage.from_api(item) for item in payload or []]

    def fetch_page(self, page_id: int) -> WordPressPage:
        payload = self._request(
            "GET",
            f"pages/{page_id}",
            action="fetch page",
            params={"context": "edit"},
        )
        return WordPressPage.from_api(payload)

    def create_page(self, page_data: Mapping[str, Any]) -> WordPressPage:
        payload = self._request("POST", "pages", action="create page", json=dict(page_data))
        page = WordPressPage.from_api(payload)
        logger.info("Created page %s (%s)", page.id, page.status)
        return page
