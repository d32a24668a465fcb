"""Category label patterns for award-announcement articles.

The table is ordered: more specific labels come first, so a heading such as
"Best Supporting Actress" is claimed before the "Best Actress" rule gets a look.
Extractors take the table at construction time; `DEFAULT_CATEGORY_PATTERNS`
covers English and pt-BR Oscar coverage.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence

from awardpool.extraction.text_cleaning import dedup_key


@dataclass(frozen=True)
class CategoryPattern:
    label: str
    pattern: Pattern[str]

    def matches(self, text: str) -> bool:
        return self.pattern.search(text or "") is not None


def _p(label: str, regex: str) -> CategoryPattern:
    return CategoryPattern(label=label, pattern=re.compile(regex, re.IGNORECASE))


DEFAULT_CATEGORY_PATTERNS: tuple[CategoryPattern, ...] = (
    # English: supporting before lead, shorts before features
    _p("Best Supporting Actress", r"\bbest (?:supporting actress|actress in a supporting role)\b"),
    _p("Best Supporting Actor", r"\bbest (?:supporting actor|actor in a supporting role)\b"),
    _p("Best Actress", r"\bbest (?:lead )?actress\b"),
    _p("Best Actor", r"\bbest (?:lead )?actor\b"),
    _p("Best Director", r"\bbest direct(?:or|ing)\b"),
    _p("Best Animated Short Film", r"\bbest animated short\b"),
    _p("Best Live Action Short Film", r"\bbest live[- ]action short\b"),
    _p("Best Documentary Short Film", r"\bbest documentary short\b"),
    _p("Best Documentary Feature Film", r"\bbest documentary\b"),
    _p("Best Animated Feature Film", r"\bbest animated (?:feature|film)\b"),
    _p("Best International Feature Film", r"\bbest (?:international feature|foreign language film)\b"),
    _p("Best Original Screenplay", r"\bbest original screenplay\b"),
    _p("Best Adapted Screenplay", r"\bbest adapted screenplay\b"),
    _p("Best Cinematography", r"\bbest cinematography\b"),
    _p("Best Film Editing", r"\bbest (?:film )?editing\b"),
    _p("Best Sound", r"\bbest sound\b"),
    _p("Best Costume Design", r"\bbest costume design\b"),
    _p("Best Makeup and Hairstyling", r"\bbest makeup(?: and hairstyling)?\b"),
    _p("Best Production Design", r"\bbest production design\b"),
    _p("Best Original Score", r"\bbest (?:original )?score\b"),
    _p("Best Original Song", r"\bbest (?:original )?song\b"),
    _p("Best Visual Effects", r"\bbest visual effects\b"),
    _p("Best Casting", r"\bbest casting\b"),
    _p("Best Picture", r"\bbest picture\b"),
    # pt-BR
    _p("Melhor Atriz Coadjuvante", r"\bmelhor atriz coadjuvante\b"),
    _p("Melhor Ator Coadjuvante", r"\bmelhor ator coadjuvante\b"),
    _p("Melhor Atriz", r"\bmelhor atriz\b"),
    _p("Melhor Ator", r"\bmelhor ator\b"),
    _p("Melhor Direção", r"\bmelhor (?:dire[çc][ãa]o|diretor|diretora)\b(?!\s+de\s+arte)"),
    _p("Melhor Documentário em Curta", r"\bmelhor document[áa]rio em curta(?:-metragem)?\b"),
    _p("Melhor Curta de Animação", r"\bmelhor curta(?:-metragem)? (?:de )?anima[çc][ãa]o\b"),
    _p("Melhor Curta Live Action", r"\bmelhor curta(?:-metragem)? (?:live action|de fic[çc][ãa]o)\b"),
    _p("Melhor Documentário", r"\bmelhor document[áa]rio\b"),
    _p("Melhor Filme de Animação", r"\bmelhor (?:filme de |longa de )?anima[çc][ãa]o\b"),
    _p("Melhor Filme Internacional", r"\bmelhor filme (?:internacional|estrangeiro)\b"),
    _p("Melhor Roteiro Original", r"\bmelhor roteiro original\b"),
    _p("Melhor Roteiro Adaptado", r"\bmelhor roteiro adaptado\b"),
    _p("Melhor Fotografia", r"\bmelhor fotografia\b"),
    _p("Melhor Edição", r"\bmelhor edi[çc][ãa]o\b"),
    _p("Melhor Montagem", r"\bmelhor montagem\b"),
    _p("Melhor Som", r"\bmelhor som\b"),
    _p("Melhor Figurino", r"\bmelhor figurino\b"),
    _p("Melhor Maquiagem e Penteado", r"\bmelhor maqui[ae]gem(?: e penteado)?\b"),
    _p("Melhor Design de Produção", r"\bmelhor (?:design de produ[çc][ãa]o|dire[çc][ãa]o de arte)\b"),
    _p("Melhor Trilha Sonora", r"\bmelhor trilha sonora\b"),
    _p("Melhor Canção Original", r"\bmelhor can[çc][ãa]o original\b"),
    _p("Melhor Efeitos Visuais", r"\bmelhores? efeitos visuais\b"),
    _p("Melhor Elenco", r"\bmelhor elenco\b"),
    _p("Melhor Filme", r"\bmelhor filme\b"),
)


def match_category(text: str, patterns: Sequence[CategoryPattern] = DEFAULT_CATEGORY_PATTERNS) -> Optional[str]:
    """Return the label of the first pattern that matches `text`."""
    for cat in patterns:
        if cat.matches(text):
            return cat.label
    return None


# --- category type -------------------------------------------------------------

CATEGORY_TYPE_ACTING = "acting"
CATEGORY_TYPE_WORK = "work"
CATEGORY_TYPE_GENERIC = "generic"

# Person-centric categories: list items read "Person - Film"
_ACTING_RE = re.compile(
    r"\b(?:actor|actress|acting|performance|ator|atriz|director|directing|diretor|diretora)\b"
    r"|\bdirecao\b(?!\s+de\s+arte)"
)
# Work-centric categories: the whole phrase is the nominee
_WORK_RE = re.compile(
    r"\b(?:picture|film|feature|screenplay|cinematography|editing|sound|costume|makeup|"
    r"production design|score|song|visual effects|casting|documentary|animated|short|"
    r"filme|roteiro|fotografia|edicao|montagem|som|figurino|maquiagem|design|trilha|"
    r"cancao|efeitos|elenco|documentario|animacao|curta|direcao de arte)\b"
)


def category_type(label: Optional[str]) -> str:
    """Classify a category label as acting, work, or generic (ambiguous)."""
    key = dedup_key(label)
    if not key:
        return CATEGORY_TYPE_GENERIC
    if _ACTING_RE.search(key):
        return CATEGORY_TYPE_ACTING
    if _WORK_RE.search(key):
        return CATEGORY_TYPE_WORK
    return CATEGORY_TYPE_GENERIC
