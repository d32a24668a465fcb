"""Static category synonym table.

Keys and values are dedup keys (case-folded, diacritic-stripped). A key lists
the alternate phrasings sources use for that category; lookups are symmetric,
so an existing "Best Film Editing" category also absorbs "Best Editing".
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Mapping

from awardpool.extraction.text_cleaning import dedup_key


CATEGORY_SYNONYMS: Mapping[str, FrozenSet[str]] = {
    # English
    "best editing": frozenset({"best film editing", "film editing", "editing"}),
    "best picture": frozenset({"best film", "best motion picture"}),
    "best animated feature film": frozenset({"best animated feature", "best animated film", "animated feature"}),
    "best documentary feature film": frozenset({"best documentary feature", "best documentary", "documentary feature"}),
    "best documentary short film": frozenset({"best documentary short", "documentary short"}),
    "best animated short film": frozenset({"best animated short", "animated short"}),
    "best live action short film": frozenset({"best live action short", "live action short"}),
    "best international feature film": frozenset({"best international feature", "best foreign language film"}),
    "best makeup and hairstyling": frozenset({"best makeup", "makeup and hairstyling"}),
    "best production design": frozenset({"best art direction", "production design"}),
    "best original score": frozenset({"best score", "original score"}),
    "best original song": frozenset({"best song", "original song"}),
    "best sound": frozenset({"best sound mixing", "best sound editing"}),
    "best supporting actor": frozenset({"best actor in a supporting role"}),
    "best supporting actress": frozenset({"best actress in a supporting role"}),
    "best director": frozenset({"best directing"}),
    # pt-BR
    "melhor edicao": frozenset({"melhor montagem", "montagem"}),
    "melhor montagem": frozenset({"melhor edicao", "edicao"}),
    "melhor filme de animacao": frozenset({"melhor animacao", "animacao"}),
    "melhor documentario": frozenset({"documentario"}),
    "melhor documentario em curta": frozenset({"documentario em curta", "curta documentario"}),
    "melhor curta de animacao": frozenset({"curta animacao"}),
    "melhor curta live action": frozenset({"curta live action", "curta ficcao"}),
    "melhor roteiro original": frozenset({"roteiro original"}),
    "melhor roteiro adaptado": frozenset({"roteiro adaptado"}),
    "melhor design de producao": frozenset({"design de producao", "direcao de arte"}),
    "melhor maquiagem e penteado": frozenset({"maquiagem e penteado", "maquiagem"}),
    "melhor trilha sonora": frozenset({"trilha sonora"}),
    "melhor cancao original": frozenset({"cancao original"}),
    "melhor filme internacional": frozenset({"filme internacional"}),
    "melhor direcao": frozenset({"melhor diretor", "melhor diretora"}),
}


def _build_index(table: Mapping[str, FrozenSet[str]]) -> Dict[str, FrozenSet[str]]:
    index: Dict[str, set] = {}
    for key, alts in table.items():
        index.setdefault(key, set()).update(alts)
        for alt in alts:
            index.setdefault(alt, set()).add(key)
    return {k: frozenset(v) for k, v in index.items()}


_INDEX = _build_index(CATEGORY_SYNONYMS)


def synonyms_for(label: str) -> FrozenSet[str]:
    """Alternate dedup keys for a category name (empty when none are known)."""
    return _INDEX.get(dedup_key(label), frozenset())


def are_synonyms(a: str, b: str) -> bool:
    ka, kb = dedup_key(a), dedup_key(b)
    if not ka or not kb:
        return False
    return ka == kb or kb in _INDEX.get(ka, frozenset())
