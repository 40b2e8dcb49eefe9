# src/odata_provider/odata/inflection.py

import inflect

_ENGINE = inflect.engine()


def pluralize(word: str) -> str:
    if not word:
        return word
    return _ENGINE.plural_noun(word) or word


def singularize(word: str) -> str:
    """
    Singular form of `word`. inflect returns False for words it already
    considers singular, in which case the word is returned unchanged.
    """
    if not word:
        return word
    return _ENGINE.singular_noun(word) or word


def is_plural(word: str) -> bool:
    # "Dogs" -> "Dog" -> "Dogs"; "Dogs(1)" and "Dog" do not survive the round trip
    if not word:
        return False
    singular = _ENGINE.singular_noun(word)
    if not singular:
        return False
    return pluralize(singular) == word
