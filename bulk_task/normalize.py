from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping


def _token(value: str) -> Any:
    value = value.strip()
    return int(value) if value.isdecimal() else value


def split_csv(value: str) -> List[Any]:
    """'1337, 187' -> [1337, 187]; empty tokens are dropped."""
    return [_token(v) for v in value.split(",") if v.strip()]


def process_csv_arguments_to_arrays(args: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Turn CLI-style CSV values into lists for every key containing '__'
    (--post__in=1337,187 -> [1337, 187]). Values that are not strings are
    already lists and are kept as they are.
    """
    out = dict(args)
    for key, value in args.items():
        if "__" in key and isinstance(value, str):
            out[key] = split_csv(value)
    return out


def is_integer(value: Any) -> bool:
    """Strict term-id test: 7, "7", " -7". Not "1.5", "nan", "inf" or superscripts."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    s = str(value).strip()
    if s.startswith("-"):
        s = s[1:]
    return s.isdecimal()


def contains_only_integers(values: Iterable[Any]) -> bool:
    return all(is_integer(v) for v in values)


def parse_taxonomy_arguments(args: Mapping[str, Any]) -> Dict[str, Any]:
    """--taxonomy=tag --terms=snowboarding,ski -> tax_query (by id when every term is an integer, else by slug)."""
    out = dict(args)
    if out.get("taxonomy") is None or out.get("terms") is None:
        return out

    terms = out["terms"]
    if isinstance(terms, str):
        terms = [t.strip() for t in terms.split(",") if t.strip()]
    else:
        terms = list(terms)

    if terms:
        by_id = contains_only_integers(terms)
        out["tax_query"] = {
            "taxonomy": out["taxonomy"],
            "field": "id" if by_id else "slug",
            "terms": [int(str(t).strip()) for t in terms] if by_id else [str(t) for t in terms],
        }

    del out["taxonomy"], out["terms"]
    return out


def normalize_arguments(args: Mapping[str, Any]) -> Dict[str, Any]:
    return parse_taxonomy_arguments(process_csv_arguments_to_arrays(args))
