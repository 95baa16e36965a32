"""Reference identifiers used when mapping external records to BookBrainz data."""

# BookBrainz identifier type ids
OPENLIBRARY_EDITION_ID = 6
OPENLIBRARY_WORK_ID = 8
ISBN13_EDITION = 9
ISBN10_EDITION = 10
VIAF_AUTHOR = 12
LIBRARYTHING_AUTHOR = 15
WIKIDATA_AUTHOR = 18

# BookBrainz language ids
LANGUAGE_IDS = {
    "English": 120,
    "French": 134,
    "German": 145,
    "Italian": 195,
    "Japanese": 198,
    "Russian": 353,
    "Spanish": 393,
}
DEFAULT_LANGUAGE_ID = LANGUAGE_IDS["English"]

# OpenLibrary language keys (MARC codes, some records use ISO 639-2/T)
OPENLIBRARY_LANGUAGES = {
    "eng": "English",
    "fre": "French",
    "fra": "French",
    "ger": "German",
    "deu": "German",
    "ita": "Italian",
    "jpn": "Japanese",
    "rus": "Russian",
    "spa": "Spanish",
}

SORT_NAME_ARTICLES = frozenset({"a", "an", "the", "los", "las", "el", "la"})
SORT_NAME_SUFFIXES = frozenset(
    {
        "i", "ii", "iii", "iv", "v", "vi", "vii", "viii", "ix", "x", "xi",
        "xii", "xiii", "xiv", "xv", "jr", "junior", "sr", "senior", "phd", "md",
        "dmd", "dds", "esq",
    }
)
