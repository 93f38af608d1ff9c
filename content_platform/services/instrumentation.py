"""
Base-URL and tracking-snippet injection for served artifacts.
"""

from __future__ import annotations

import json
import re

TRACKING_PLACEHOLDER = "{{TRACKING_LINK_ID}}"

_HEAD_OPEN_RE = re.compile(r"<head(?:\s[^>]*)?>", re.IGNORECASE)
_HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.IGNORECASE)
_BODY_CLOSE_RE = re.compile(r"</body\s*>", re.IGNORECASE)

_SNIPPET_TEMPLATE = """<script>
(function() {
    const API_BASE = %(api_base)s;
    const CONTENT_ID = %(content_id)s;
    const TRACKING_LINK_ID = %(placeholder)s;
    const interactions = [];

    function post(path, payload) {
        return fetch(API_BASE + path, {
            method: 'POST',
            headers: { 'Content-Type': 'application/json' },
            body: JSON.stringify(payload),
            keepalive: true
        }).catch(function(err) { console.error('Tracking error:', err); });
    }

    function trackInteraction(element, interactionType, value) {
        const tag = element.getAttribute('data-tag') || element.getAttribute('data-cue');
        if (!tag) return;
        interactions.push({ tag: tag, type: interactionType, value: value, timestamp: new Date().toISOString() });
        post('/track-interaction', {
            tracking_link_id: TRACKING_LINK_ID,
            tag_name: tag,
            interaction_type: interactionType,
            interaction_value: value
        });
    }

    document.addEventListener('DOMContentLoaded', function() {
        document.querySelectorAll('[data-tag], [data-cue]').forEach(function(el) {
            el.addEventListener('click', function() { trackInteraction(this, 'click', null); });
            if (el.tagName === 'INPUT' || el.tagName === 'TEXTAREA' || el.tagName === 'SELECT') {
                el.addEventListener('change', function() { trackInteraction(this, 'input', this.value); });
            }
        });
    });

    window.RecordTest = function(score) {
        post('/record-score', {
            tracking_link_id: TRACKING_LINK_ID,
            content_id: CONTENT_ID,
            score: score,
            interactions: interactions
        });
        return true;
    };

    post('/track-view', { tracking_link_id: TRACKING_LINK_ID, content_id: CONTENT_ID });
})();
</script>"""


def _script_literal(value: str) -> str:
    return json.dumps(value).replace("</", "<\\/")


def base_tag(base_path: str, content_id: str) -> str:
    return f'<base href="{base_path}/content/{content_id}/">'


def inject_base_tag(html: str, base_path: str, content_id: str) -> str:
    """Insert the base element as the first child of <head>, else right before </head>."""
    tag = base_tag(base_path, content_id)
    match = _HEAD_OPEN_RE.search(html)
    if match:
        return html[: match.end()] + "\n" + tag + html[match.end():]
    match = _HEAD_CLOSE_RE.search(html)
    if match:
        return html[: match.start()] + tag + "\n" + html[match.start():]
    return html


def tracking_snippet(base_path: str, content_id: str) -> str:
    return _SNIPPET_TEMPLATE % {
        "api_base": _script_literal(f"{base_path}/api"),
        "content_id": _script_literal(content_id),
        "placeholder": TRACKING_PLACEHOLDER,
    }


def inject_tracking_snippet(html: str, snippet: str) -> str:
    """Place snippet right before the last </body>, or append it when there is none."""
    matches = list(_BODY_CLOSE_RE.finditer(html))
    if not matches:
        return html + "\n" + snippet
    position = matches[-1].start()
    return html[:position] + snippet + "\n" + html[position:]


def instrument(html: str, base_path: str, content_id: str) -> str:
    with_base = inject_base_tag(html, base_path, content_id)
    return inject_tracking_snippet(with_base, tracking_snippet(base_path, content_id))


def render_for_session(artifact_html: str, tracking_link_id: str) -> str:
    """Bind a stored artifact to one tracking session."""
    return artifact_html.replace(TRACKING_PLACEHOLDER, _script_literal(tracking_link_id))
