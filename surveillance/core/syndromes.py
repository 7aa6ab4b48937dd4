"""
Syndrome Mapper

Maps a chief complaint and differential diagnoses to the closed set of
syndrome categories used to decide which surveillance sources are relevant.
Keyword matching only, no LLM calls.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Pattern, Sequence

from .types import Syndrome

# Keyword tables: clinical phrasing, synonyms and common ED abbreviations
SYNDROME_KEYWORDS: Dict[Syndrome, List[str]] = {
    Syndrome.RESPIRATORY_UPPER: [
        "cough", "sore throat", "pharyngitis", "rhinorrhea", "runny nose", "congestion",
        "nasal", "sinusitis", "uri", "upper respiratory", "cold", "influenza", "flu",
        "ili", "strep", "tonsillitis", "laryngitis", "croup", "sneezing",
    ],
    Syndrome.RESPIRATORY_LOWER: [
        "pneumonia", "bronchitis", "bronchiolitis", "dyspnea", "shortness of breath",
        "sob", "wheezing", "rsv", "respiratory syncytial", "pleurisy", "lung", "pulmonary",
        "covid", "covid-19", "sars", "sars-cov-2", "ards", "hypoxia", "oxygen",
        "chest tightness", "respiratory failure", "respiratory distress",
    ],
    Syndrome.GASTROINTESTINAL: [
        "nausea", "vomiting", "n/v", "diarrhea", "abdominal pain", "abd pain",
        "gastroenteritis", "norovirus", "rotavirus", "food poisoning",
        "dehydration", "gi", "bloody stool", "dysentery", "salmonella", "e. coli",
        "campylobacter", "c. diff", "clostridium", "shigella",
    ],
    Syndrome.NEUROLOGICAL: [
        "headache", "meningitis", "encephalitis", "seizure", "altered mental status",
        "confusion", "ams", "west nile", "guillain-barre", "paralysis", "paresthesia",
        "neck stiffness", "stiff neck", "photophobia", "eee", "eastern equine",
    ],
    Syndrome.FEBRILE_RASH: [
        "rash", "fever rash", "measles", "rubella", "varicella", "chickenpox", "mpox",
        "monkeypox", "vesicular", "maculopapular", "petechial", "petechiae", "exanthem",
        "hand foot mouth", "hand, foot and mouth", "hfmd",
    ],
    Syndrome.HEMORRHAGIC: [
        "hemorrhagic", "bleeding", "ebola", "marburg", "hantavirus", "dengue hemorrhagic",
        "dic", "disseminated intravascular",
    ],
    Syndrome.SEPSIS_SHOCK: [
        "sepsis", "septic shock", "bacteremia", "sirs", "fever", "febrile", "chills",
        "rigors", "hypotension", "tachycardia", "lactic acidosis", "organ failure",
    ],
    Syndrome.CARDIOVASCULAR: [
        "myocarditis", "pericarditis", "kawasaki", "endocarditis", "rheumatic fever",
        "cardiomyopathy",
    ],
    Syndrome.VECTOR_BORNE: [
        "tick", "tick bite", "mosquito", "lyme", "rocky mountain spotted fever", "rmsf",
        "ehrlichiosis", "anaplasmosis", "babesiosis", "zika", "dengue", "malaria",
        "chikungunya", "west nile", "powassan",
    ],
    Syndrome.BIOTERRORISM_SENTINEL: [
        "anthrax", "smallpox", "botulism", "tularemia", "plague", "viral hemorrhagic",
        "ricin", "q fever",
    ],
}

CHIEF_COMPLAINT_WEIGHT = 2
DIFFERENTIAL_WEIGHT = 1


def _keyword_pattern(keyword: str) -> Pattern[str]:
    # Word-boundary match tolerating a plural suffix ("headaches", "rashes")
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword) + r"(?:s|es)?(?![a-z0-9])")


_COMPILED: Dict[Syndrome, List[Pattern[str]]] = {
    syndrome: [_keyword_pattern(k) for k in keywords]
    for syndrome, keywords in SYNDROME_KEYWORDS.items()
}


def _count_hits(patterns: List[Pattern[str]], text: str) -> int:
    return sum(1 for p in patterns if p.search(text))


def map_to_syndromes(
    chief_complaint: str,
    differential: Optional[Sequence[str]] = None,
) -> List[Syndrome]:
    """
    Map a chief complaint and differential to syndrome categories.

    Chief complaint hits weigh twice as much as differential hits. Categories
    are returned by descending weight (vocabulary order breaks ties); an empty
    list means no surveillance source applies.
    """
    cc_text = (chief_complaint or "").lower()
    dx_texts = [d.lower() for d in (differential or []) if d and d.strip()]

    scored = []
    for order, (syndrome, patterns) in enumerate(_COMPILED.items()):
        score = _count_hits(patterns, cc_text) * CHIEF_COMPLAINT_WEIGHT
        for dx in dx_texts:
            score += _count_hits(patterns, dx) * DIFFERENTIAL_WEIGHT
        if score > 0:
            scored.append((score, order, syndrome))

    scored.sort(key=lambda item: (-item[0], item[1]))
    return [syndrome for _, _, syndrome in scored]
