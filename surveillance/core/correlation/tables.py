"""
Pathogen reference tables for correlation scoring.

Profiles are keyed by canonical pathogen name; surveillance labels and
differential entries are mapped onto them through PATHOGEN_ALIASES.
"""
import re
from typing import Dict, List, Optional, Pattern, Tuple

# Canonical pathogen → expected presenting symptoms
PATHOGEN_SYMPTOM_MAP: Dict[str, List[str]] = {
    "Influenza": ["fever", "cough", "myalgia", "headache", "fatigue", "sore throat", "chills"],
    "COVID-19": ["fever", "cough", "dyspnea", "fatigue", "anosmia", "ageusia", "myalgia", "sore throat"],
    "RSV": ["cough", "wheezing", "rhinorrhea", "fever", "dyspnea", "bronchiolitis", "respiratory distress"],
    "Norovirus": ["nausea", "vomiting", "diarrhea", "abdominal pain", "fever", "dehydration"],
    "Mpox": ["rash", "fever", "lymphadenopathy", "myalgia", "headache", "vesicular"],
    "West Nile Virus": ["fever", "headache", "fatigue", "rash", "myalgia", "meningitis", "encephalitis"],
    "Lyme Disease": ["rash", "fever", "headache", "fatigue", "joint pain", "tick bite", "erythema migrans"],
    "Dengue": ["fever", "headache", "myalgia", "rash", "hemorrhagic", "thrombocytopenia"],
    "Salmonella": ["diarrhea", "fever", "abdominal pain", "nausea", "vomiting"],
    "E. coli": ["diarrhea", "bloody stool", "abdominal pain", "hus", "hemolytic uremic"],
    "Measles": ["rash", "fever", "cough", "conjunctivitis", "coryza", "koplik"],
    "Pertussis": ["cough", "whooping cough", "paroxysmal", "post-tussive vomiting"],
    "Meningococcal Disease": ["fever", "headache", "neck stiffness", "rash", "petechial", "altered mental status"],
}

# Chief-complaint phrasings counted as the profile symptom
SYMPTOM_SYNONYMS: Dict[str, List[str]] = {
    "dyspnea": ["shortness of breath", "sob", "difficulty breathing"],
    "myalgia": ["body aches", "muscle aches", "muscle pain"],
    "rhinorrhea": ["runny nose"],
    "abdominal pain": ["abd pain", "stomach pain"],
    "neck stiffness": ["stiff neck"],
    "altered mental status": ["ams", "confusion"],
    "anosmia": ["loss of smell"],
    "ageusia": ["loss of taste"],
    "fatigue": ["tired", "malaise"],
}

# Canonical pathogen → peak months (1-12)
SEASONAL_PEAKS: Dict[str, List[int]] = {
    "Influenza": [11, 12, 1, 2, 3],
    "COVID-19": [1, 2, 7, 8, 11, 12],
    "RSV": [10, 11, 12, 1, 2],
    "Norovirus": [11, 12, 1, 2, 3],
    "West Nile Virus": [6, 7, 8, 9, 10],
    "Lyme Disease": [5, 6, 7, 8],
    "Dengue": [6, 7, 8, 9, 10],
}

# Canonical pathogen → names used by surveillance sources and clinicians
PATHOGEN_ALIASES: Dict[str, List[str]] = {
    "Influenza": ["influenza", "influenza a", "influenza b", "flu", "h1n1", "h3n2"],
    "COVID-19": ["covid-19", "covid", "sars-cov-2", "coronavirus"],
    "RSV": ["rsv", "respiratory syncytial", "bronchiolitis"],
    "Norovirus": ["norovirus", "noro", "viral gastroenteritis"],
    "Mpox": ["mpox", "monkeypox"],
    "West Nile Virus": ["west nile"],
    "Lyme Disease": ["lyme"],
    "Dengue": ["dengue"],
    "Salmonella": ["salmonella", "salmonellosis"],
    "E. coli": ["e. coli", "stec", "escherichia coli"],
    "Measles": ["measles", "rubeola"],
    "Pertussis": ["pertussis", "whooping cough"],
    "Meningococcal Disease": ["meningococcal", "meningococcemia", "neisseria meningitidis"],
}


def _word_pattern(term: str, plural: bool = False) -> Pattern[str]:
    suffix = r"(?:s|es)?" if plural else ""
    return re.compile(r"(?<![a-z0-9])" + re.escape(term) + suffix + r"(?![a-z0-9])")


# Longest aliases first so "influenza a" wins over "flu"
_ALIAS_PATTERNS: List[Tuple[Pattern[str], str]] = sorted(
    (
        (_word_pattern(alias), canonical)
        for canonical, aliases in PATHOGEN_ALIASES.items()
        for alias in aliases
    ),
    key=lambda item: -len(item[0].pattern),
)

_SYMPTOM_PATTERNS: Dict[str, List[Pattern[str]]] = {}


def canonical_pathogen(name: Optional[str]) -> Optional[str]:
    """Map a condition label or differential entry to its canonical pathogen, if any."""
    if not name:
        return None
    text = name.lower()
    for pattern, canonical in _ALIAS_PATTERNS:
        if pattern.search(text):
            return canonical
    return None


def symptom_present(symptom: str, text: str) -> bool:
    """True when ``symptom`` (or one of its synonyms) appears in lower-cased ``text``."""
    patterns = _SYMPTOM_PATTERNS.get(symptom)
    if patterns is None:
        terms = [symptom] + SYMPTOM_SYNONYMS.get(symptom, [])
        patterns = [_word_pattern(t, plural=True) for t in terms]
        _SYMPTOM_PATTERNS[symptom] = patterns
    return any(p.search(text) for p in patterns)
