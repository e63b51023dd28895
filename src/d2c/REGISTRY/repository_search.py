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
Scoring of Docker Hub repository search results.
"""
import math
from typing import List, Optional

from pydantic import BaseModel

from .image_reference import ResolvedRepository

# Never chosen over a candidate that parses.
UNUSABLE_SCORE = -(2 ** 62)

EXACT_MATCH_BONUS = 2000
PREFIX_MATCH_BONUS = 1200
SUBSTRING_MATCH_BONUS = 600
OFFICIAL_BONUS = 1500


class SearchResult(BaseModel):
    """
    One entry of the Docker Hub repository search API.
    """
    repo_name: str
    pull_count: int = 0
    star_count: int = 0
    is_official: bool = False


class SearchResponse(BaseModel):
    """
    Body of GET /v2/search/repositories/.
    """
    results: List[SearchResult] = []


def score_candidate(result: SearchResult, term: str) -> int:
    """
    Scores a search result against the term the user typed.

    :param result: The search result.
    :param term: The user's search term.
    :return: Higher is a better match.
    """
    resolved = ResolvedRepository.from_search_name(result.repo_name, result.is_official)
    if resolved is None:
        return UNUSABLE_SCORE

    term_lower = term.lower()
    repo_lower = resolved.repo.lower()

    score = 0
    if repo_lower == term_lower:
        score += EXACT_MATCH_BONUS
    elif repo_lower.startswith(term_lower):
        score += PREFIX_MATCH_BONUS
    elif term_lower in repo_lower:
        score += SUBSTRING_MATCH_BONUS

    if result.is_official or result.repo_name == resolved.repo:
        score += OFFICIAL_BONUS

    score += int(math.sqrt(max(result.star_count, 0)) * 6)
    score += int(math.log1p(max(result.pull_count, 0)) * 10)
    return score


def pick_best(results: List[SearchResult], term: str) -> Optional[ResolvedRepository]:
    """
    Picks the highest scoring search result.

    The first maximum in result order wins ties.

    :param results: Search results in API order.
    :param term: The user's search term.
    :return: The chosen repository, or None if nothing parses.
    """
    best = None
    best_score = None
    for result in results:
        score = score_candidate(result, term)
        if best_score is None or score > best_score:
            best, best_score = result, score

    if best is None:
        return None
    return ResolvedRepository.from_search_name(best.repo_name, best.is_official)
