"""Skill list helpers.

Members complement each other when one offers something the other wants.
Skill names are compared exactly; case is significant.
"""
from typing import Any, Dict, Iterable, List, Mapping


def normalize_skills(skills: Iterable[str]) -> List[str]:
    """Strip names, drop blanks and duplicates, keep first-seen order."""
    seen = set()
    result = []
    for skill in skills or []:
        name = skill.strip()
        if name and name not in seen:
            seen.add(name)
            result.append(name)
    return result


def _intersect(left: Iterable[str], right: Iterable[str]) -> List[str]:
    right_set = set(right or [])
    return [skill for skill in left or [] if skill in right_set]


def skill_overlap(user: Mapping[str, Any], candidate: Mapping[str, Any]) -> Dict[str, List[str]]:
    """Describe how candidate's skills line up with user's.

    Returns:
        Dict with:
            - they_offer: skills candidate offers that user wants
            - they_want: skills candidate wants that user offers
    """
    return {
        'they_offer': _intersect(candidate['skills_offered'], user['skills_wanted']),
        'they_want': _intersect(candidate['skills_wanted'], user['skills_offered']),
    }
