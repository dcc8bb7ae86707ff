"""End-to-end runs against a real Chromium.

Enabled with ``WAYANG_E2E=1`` once ``playwright install chromium`` has been run.
"""

import os
from urllib.parse import quote

import pytest

from wayang.config import RunConfig
from wayang.errors import ErrorCode
from wayang.runner import Runner

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(os.environ.get("WAYANG_E2E") != "1", reason="set WAYANG_E2E=1 to drive a real browser"),
]

PAGE = """
<html>
  <body>
    <h1 class="title">Shop</h1>
    <ul><li>apple</li><li>banana</li><li>cherry</li></ul>
    <input id="q" value="">
    <a id="docs" href="/docs">Docs</a>
  </body>
</html>
"""


@pytest.mark.asyncio
async def test_program_against_real_page():
    runner = await Runner.launch(RunConfig(timeout_s=30))
    async with runner:
        result = await runner.run(
            {
                "selectors": {"title": "h1.title", "query": "#q"},
                "actions": {"search": {"action": "input", "element": "$query", "text": "banana"}},
                "steps": [
                    {"action": "navigate", "link": "data:text/html," + quote(PAGE)},
                    {"action": "waitLoad"},
                    {"action": "$search"},
                    {
                        "action": "store",
                        "items": {
                            "title": {"action": "text", "element": "$title"},
                            "query": {"action": "text", "element": "$query"},
                            "href": {"action": "attribute", "element": "#docs", "name": "href"},
                            "has_list": {"action": "has", "element": "li"},
                        },
                    },
                    {"action": "forEach", "elements": "li", "execute": {"action": "scrollIntoView"}},
                    {"action": "textEqual", "expected": "SHOP", "ignoreCase": True, "statement": {"action": "text", "element": "$title"}},
                ],
            }
        )

    assert result.ok, result.error and result.error.dump()
    assert result.value is True
    assert runner.store.as_dict() == {"title": "Shop", "query": "banana", "href": "/docs", "has_list": True}


@pytest.mark.asyncio
async def test_missing_element_against_real_page():
    runner = await Runner.launch(RunConfig(timeout_s=30, action_timeout_ms=200))
    async with runner:
        result = await runner.run(
            {
                "steps": [
                    {"action": "navigate", "link": "data:text/html," + quote(PAGE)},
                    {"action": "click", "element": "#does-not-exist"},
                ]
            }
        )
    assert result.error.code is ErrorCode.ELEMENT_NOT_FOUND
    assert result.error.source == "root[1].click"


@pytest.mark.asyncio
async def test_has_xpath_after_navigation():
    runner = await Runner.launch(RunConfig(timeout_s=30))
    async with runner:
        result = await runner.run(
            {
                "selectors": {},
                "actions": {},
                "steps": [
                    {"action": "navigate", "link": "data:text/html," + quote("<div>hello</div>")},
                    {"action": "has", "element": "//div"},
                ],
            }
        )
    assert result.ok
    assert result.value is True
