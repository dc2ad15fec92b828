"""
Child admission policy for webgrab.

Decides whether a link discovered on a page is queued and which policy it inherits.
"""

import re
from dataclasses import replace

from webgrab.models import ChildDecision, CrawlPolicy
from webgrab.utils.url_utils import get_host


def _any_match(patterns: tuple[re.Pattern, ...], uri: str) -> bool:
    return any(pattern.search(uri) for pattern in patterns)


def admit_child(
    parent_policy: CrawlPolicy,
    parent_host: str,
    candidate_uri: str,
    references_only: bool = False,
) -> ChildDecision | None:
    """
    Decide whether a candidate child URI should be crawled.

    Precedence is fixed: same-host default, then ``deny_children`` can only
    turn it off, then ``allow_children`` can only turn it on and is applied
    last. Expansion of the child follows the same order with
    ``expand_children``, ``deny_expand`` and ``allow_expand``.

    Args:
        parent_policy: Policy of the page the link was found on.
        parent_host: Host (with port) of that page's URI.
        candidate_uri: Canonical URI of the discovered link.
        references_only: Report rather than queue children whose depth
            would reach zero.

    Returns:
        A ChildDecision, or None if the child is not wanted.
    """
    if parent_policy.depth_remaining == 0 or not parent_policy.follow_children:
        return None

    get_me = get_host(candidate_uri) == parent_host
    if _any_match(parent_policy.deny_children, candidate_uri):
        get_me = False
    if _any_match(parent_policy.allow_children, candidate_uri):
        get_me = True
    if not get_me:
        return None

    expand = parent_policy.expand_children
    if _any_match(parent_policy.deny_expand, candidate_uri):
        expand = False
    if _any_match(parent_policy.allow_expand, candidate_uri):
        expand = True

    child = replace(
        parent_policy,
        follow_children=expand,
        depth_remaining=parent_policy.depth_remaining - 1,
    )
    return ChildDecision(
        policy=child,
        enqueue=not (references_only and child.depth_remaining == 0),
    )
