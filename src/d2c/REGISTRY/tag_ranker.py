# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Ordering of image tags.

Without a query, tags are ordered by importance: 'latest' first, stable
releases before pre-releases, newer versions before older ones. With a query,
tags are fuzzy matched (fzy scoring) and ordered by match score.
"""
import functools
import unicodedata
from typing import List, Optional, Sequence, Tuple

from pfzy.score import fzy_scorer

PRERELEASE_MARKERS = ("-rc", "rc", "alpha", "beta", "preview", "dev")
MAX_VERSION_COMPONENT = 2 ** 32 - 1


def parse_version(tag: str) -> Optional[List[int]]:
    """
    Parses the leading numeric version of a tag.

    A single leading 'v' or 'V' is skipped. Parsing stops at the first
    character that is neither a digit nor a dot, or at a dot that closes an
    empty component; the rest of the tag is ignored.

    Examples:
        - '1.25.3-alpine' -> [1, 25, 3]
        - 'v2' -> [2]
        - '1.2.3_build5' -> [1, 2, 3]
        - 'latest' -> None

    A component above 2**32 - 1 makes the whole tag unparseable, so long
    timestamp tags such as '20240101123456' are not treated as versions.

    :param tag: The tag name.
    :return: Version components, or None if no component was found.
    """
    if tag[:1] in ("v", "V"):
        tag = tag[1:]

    parts: List[int] = []
    current = ""
    for ch in tag:
        if "0" <= ch <= "9":
            current += ch
            continue
        if ch == "." and current:
            if int(current) > MAX_VERSION_COMPONENT:
                return None
            parts.append(int(current))
            current = ""
            continue
        break

    if current:
        if int(current) > MAX_VERSION_COMPONENT:
            return None
        parts.append(int(current))
    return parts or None


def is_prerelease(tag: str) -> bool:
    """
    Heuristic for tags that are not stable release builds.
    """
    lower = tag.lower()
    if any(marker in lower for marker in PRERELEASE_MARKERS):
        return True
    return any(
        a.isdigit() and a.isascii() and b.isascii() and b.isalpha()
        for a, b in zip(lower, lower[1:])
    )


def _compare_versions(left: Sequence[int], right: Sequence[int]) -> int:
    for index in range(max(len(left), len(right))):
        a = left[index] if index < len(left) else 0
        b = right[index] if index < len(right) else 0
        if a != b:
            return -1 if a > b else 1
    return 0


def compare_importance(left: str, right: str) -> int:
    """
    Comparator for sorted(): negative when `left` is more important.

    :param left: First tag.
    :param right: Second tag.
    :return: -1, 0 or 1.
    """
    left_latest = left.lower() == "latest"
    right_latest = right.lower() == "latest"
    if left_latest != right_latest:
        return -1 if left_latest else 1

    left_pre = is_prerelease(left)
    right_pre = is_prerelease(right)
    if left_pre != right_pre:
        return 1 if left_pre else -1

    left_version = parse_version(left)
    right_version = parse_version(right)
    if left_version is not None and right_version is not None:
        result = _compare_versions(left_version, right_version)
        if result:
            return result
    elif left_version is not None:
        return -1
    elif right_version is not None:
        return 1

    left_variant = "-" in left
    right_variant = "-" in right
    if left_variant != right_variant:
        return 1 if left_variant else -1

    return (left > right) - (left < right)


importance_key = functools.cmp_to_key(compare_importance)


def _fold(text: str) -> str:
    """Folds accents and width variants to their base characters."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _is_subsequence(needle: str, haystack: str) -> bool:
    offset = 0
    for ch in needle:
        offset = haystack.find(ch, offset) + 1
        if offset <= 0:
            return False
    return True


def fuzzy_score(tag: str, query: str) -> Optional[float]:
    """
    Scores a tag against a query, or returns None when it does not match.

    Whitespace separates terms that must all match; their scores add up.
    A term matches case-insensitively unless it contains an uppercase
    letter. Accented and full-width characters in the tag match their plain
    forms unless the term itself uses such characters.
    """
    total = 0.0
    for term in query.split():
        haystack = tag if _fold(term) != term else _fold(tag)
        if any(ch.isupper() for ch in term) and not _is_subsequence(term, haystack):
            return None
        score, _ = fzy_scorer(term, haystack)
        if score == float("-inf"):
            return None
        total += score
    return total


def _rank_matches(tags: Sequence[str], query: str) -> List[str]:
    matched: List[Tuple[float, str]] = []
    for tag in tags:
        score = fuzzy_score(tag, query)
        if score is not None:
            matched.append((score, tag))

    matched.sort(key=lambda item: (-item[0], importance_key(item[1]), item[1]))
    return [tag for _, tag in matched]


def filter_tags(tags: Sequence[str], query: str, limit: int) -> List[str]:
    """
    Returns at most `limit` tags, best first.

    :param tags: All tags of a repository.
    :param query: Fuzzy filter typed by the user; blank means no filter.
    :param limit: Maximum number of tags returned, clamped to at least 1.
    :return: The ordered candidate list.
    """
    limit = max(limit, 1)
    if not query.strip():
        return sorted(tags, key=importance_key)[:limit]
    return _rank_matches(tags, query)[:limit]
