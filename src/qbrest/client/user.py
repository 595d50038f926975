"""Parser for the legacy ``API_GetUserInfo`` XML document."""

from __future__ import annotations

from typing import Optional
from xml.etree import ElementTree

from qbrest.exceptions import ResponseParseError
from qbrest.models import UserInfo

_TRUE_VALUES = {"true", "1"}


def parse_user_info(xml_text: str) -> UserInfo:
    """Extract the ``<user>`` element of an ``API_GetUserInfo`` response.

    Example input::

        <qdbapi>
          <errcode>0</errcode>
          <user id="112149.bhsv">
            <firstName>Ada</firstName>
            ...
            <isVerified>true</isVerified>
          </user>
        </qdbapi>

    Raises:
        ResponseParseError: If the document is not XML or has no ``<user>``.
    """
    try:
        root = ElementTree.fromstring(xml_text)
    except ElementTree.ParseError as exc:
        raise ResponseParseError(f"Invalid XML response: {exc}") from exc

    user = root if root.tag == "user" else root.find(".//user")
    if user is None:
        raise ResponseParseError("Invalid XML response - no user element found")

    def text(tag: str) -> Optional[str]:
        node = user.find(tag)
        return node.text if node is not None else None

    return UserInfo(
        id=user.get("id"),
        first_name=text("firstName"),
        last_name=text("lastName"),
        login=text("login"),
        email=text("email"),
        screen_name=text("screenName"),
        is_verified=(text("isVerified") or "").strip().lower() in _TRUE_VALUES,
        external_auth=(text("externalAuth") or "").strip().lower() in _TRUE_VALUES,
    )
