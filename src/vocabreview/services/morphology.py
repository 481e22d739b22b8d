"""Morphological analysis used to accept inflected cloze answers."""
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator, List, Optional, Tuple

import nltk
from nltk.tokenize import RegexpTokenizer

logger = logging.getLogger(__name__)

WORD_TOKENIZER = RegexpTokenizer(r"[A-Za-z]+(?:['’][A-Za-z]+)*")

VOWELS = set("aeiou")

IRREGULAR_VERBS = {
    "was": "be", "were": "be", "been": "be", "is": "be", "am": "be", "are": "be",
    "had": "have", "has": "have", "did": "do", "does": "do", "done": "do",
    "went": "go", "gone": "go", "goes": "go", "made": "make", "took": "take",
    "taken": "take", "gave": "give", "given": "give", "came": "come", "saw": "see",
    "seen": "see", "knew": "know", "known": "know", "got": "get", "gotten": "get",
    "found": "find", "thought": "think", "told": "tell", "said": "say",
    "became": "become", "left": "leave", "felt": "feel", "brought": "bring",
    "began": "begin", "begun": "begin", "kept": "keep", "held": "hold",
    "wrote": "write", "written": "write", "stood": "stand", "heard": "hear",
    "meant": "mean", "met": "meet", "ran": "run", "paid": "pay", "sat": "sit",
    "spoke": "speak", "spoken": "speak", "lay": "lie", "lain": "lie", "led": "lead",
    "grew": "grow", "grown": "grow", "lost": "lose", "fell": "fall", "fallen": "fall",
    "sent": "send", "built": "build", "understood": "understand", "drew": "draw",
    "drawn": "draw", "broke": "break", "broken": "break", "spent": "spend",
    "rose": "rise", "risen": "rise", "drove": "drive", "driven": "drive",
    "bought": "buy", "wore": "wear", "worn": "wear", "chose": "choose",
    "chosen": "choose", "sought": "seek", "threw": "throw", "thrown": "throw",
    "caught": "catch", "dealt": "deal", "won": "win", "forgot": "forget",
    "forgotten": "forget", "forgave": "forgive", "forgiven": "forgive",
    "froze": "freeze", "frozen": "freeze", "hid": "hide", "hidden": "hide",
    "swore": "swear", "sworn": "swear", "shook": "shake", "shaken": "shake",
    "bore": "bear", "borne": "bear", "withdrew": "withdraw", "withdrawn": "withdraw",
}

IRREGULAR_NOUNS = {
    "children": "child", "men": "man", "women": "woman", "people": "person",
    "feet": "foot", "teeth": "tooth", "mice": "mouse", "geese": "goose",
    "oxen": "ox", "criteria": "criterion", "phenomena": "phenomenon",
    "analyses": "analysis", "crises": "crisis", "theses": "thesis",
    "data": "datum", "media": "medium", "lives": "life", "knives": "knife",
    "wives": "wife", "leaves": "leaf", "halves": "half", "selves": "self",
}


@dataclass
class TextMatch:
    """A literal occurrence of a word in a sentence."""
    text: str
    start: int
    end: int


@dataclass
class VerbPhrase:
    """An inflected verb with its infinitive."""
    infinitive: str
    root: str


@dataclass
class NounPhrase:
    """A noun head as written, with its singular form."""
    text: str
    singular_form: str


def iter_tokens(sentence: str) -> Iterator[Tuple[str, int, int]]:
    """Yield word tokens with their character spans."""
    for start, end in WORD_TOKENIZER.span_tokenize(sentence or ""):
        yield sentence[start:end], start, end


class MorphologicalAnalyzer(ABC):
    """Narrow lemma lookup consumed by the cloze resolver."""

    def find_literal(self, sentence: str, word: str) -> List[TextMatch]:
        """Whole-word, case-insensitive occurrences of word in sentence."""
        word = (word or "").strip()
        if not sentence or not word:
            return []
        pattern = re.compile(rf"(?<![\w'’]){re.escape(word)}(?![\w'’])", re.IGNORECASE)
        return [TextMatch(m.group(0), m.start(), m.end()) for m in pattern.finditer(sentence)]

    @abstractmethod
    def verb_phrases(self, sentence: str) -> List[VerbPhrase]:
        """Inflected verbs found in the sentence."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def noun_phrases(self, sentence: str) -> List[NounPhrase]:
        """Plural noun heads found in the sentence."""
        raise NotImplementedError("Subclasses must implement this method")


def _ends_with_double_consonant(stem: str) -> bool:
    return len(stem) >= 2 and stem[-1] == stem[-2] and stem[-1] not in VOWELS


def verb_lemma_candidates(token: str) -> List[str]:
    """Possible infinitives of an inflected verb form, most likely first."""
    token = token.lower()
    if token in IRREGULAR_VERBS:
        return [IRREGULAR_VERBS[token]]

    candidates = []
    if token.endswith("ying") and len(token) > 5:
        candidates.append(token[:-4] + "ie")
    if token.endswith("ing") and len(token) > 4:
        stem = token[:-3]
        candidates.append(stem)
        candidates.append(stem + "e")
        if _ends_with_double_consonant(stem):
            candidates.append(stem[:-1])
    elif token.endswith("ied") and len(token) > 4:
        candidates.append(token[:-3] + "y")
    elif token.endswith("ed") and len(token) > 3:
        stem = token[:-2]
        candidates.append(stem)
        candidates.append(token[:-1])
        if _ends_with_double_consonant(stem):
            candidates.append(stem[:-1])
    elif token.endswith("ies") and len(token) > 4:
        candidates.append(token[:-3] + "y")
    elif token.endswith("es") and len(token) > 3:
        candidates.append(token[:-2])
        candidates.append(token[:-1])
    elif token.endswith("s") and not token.endswith("ss") and len(token) > 2:
        candidates.append(token[:-1])
    return list(dict.fromkeys(candidates))


def noun_singular_candidates(token: str) -> List[str]:
    """Possible singular forms of a plural noun."""
    token = token.lower()
    if token in IRREGULAR_NOUNS:
        return [IRREGULAR_NOUNS[token]]

    candidates = []
    if token.endswith("ies") and len(token) > 4:
        candidates.append(token[:-3] + "y")
    elif token.endswith("ves") and len(token) > 4:
        candidates.append(token[:-3] + "f")
        candidates.append(token[:-3] + "fe")
    elif token.endswith("es") and len(token) > 3:
        if re.search(r"(s|x|z|ch|sh|o)es$", token):
            candidates.append(token[:-2])
        candidates.append(token[:-1])
    elif token.endswith("s") and not token.endswith(("ss", "us", "is")) and len(token) > 2:
        candidates.append(token[:-1])
    return list(dict.fromkeys(candidates))


class RuleBasedAnalyzer(MorphologicalAnalyzer):
    """Suffix rules and irregular tables; one record per candidate lemma."""

    def verb_phrases(self, sentence: str) -> List[VerbPhrase]:
        phrases = []
        for token, _, _ in iter_tokens(sentence):
            for lemma in verb_lemma_candidates(token):
                phrases.append(VerbPhrase(infinitive=lemma, root=token))
        return phrases

    def noun_phrases(self, sentence: str) -> List[NounPhrase]:
        phrases = []
        for token, _, _ in iter_tokens(sentence):
            for singular in noun_singular_candidates(token):
                phrases.append(NounPhrase(text=token, singular_form=singular))
        return phrases


class WordNetAnalyzer(MorphologicalAnalyzer):
    """Lemmas from the WordNet lemmatizer shipped with nltk."""
    _last_check: Optional[datetime] = None
    _check_interval = timedelta(days=7)

    def __init__(self, lemmatizer=None):
        if lemmatizer is None:
            self._check_and_update_nltk()
            from nltk.stem import WordNetLemmatizer
            lemmatizer = WordNetLemmatizer()
        self.lemmatizer = lemmatizer

    @classmethod
    def _check_and_update_nltk(cls) -> None:
        """Make sure the WordNet corpus is available."""
        current_time = datetime.now()
        if cls._last_check is not None and current_time - cls._last_check <= cls._check_interval:
            return
        try:
            nltk.data.find("corpora/wordnet")
        except LookupError:
            nltk.download("wordnet", quiet=True)
            logger.info("Downloaded NLTK wordnet data")
        cls._last_check = current_time

    def _lemma(self, token: str, pos: str) -> str:
        return self.lemmatizer.lemmatize(token.lower(), pos=pos)

    def verb_phrases(self, sentence: str) -> List[VerbPhrase]:
        phrases = []
        for token, _, _ in iter_tokens(sentence):
            lemma = self._lemma(token, "v")
            if lemma != token.lower():
                phrases.append(VerbPhrase(infinitive=lemma, root=token))
        return phrases

    def noun_phrases(self, sentence: str) -> List[NounPhrase]:
        phrases = []
        for token, _, _ in iter_tokens(sentence):
            singular = self._lemma(token, "n")
            if singular != token.lower():
                phrases.append(NounPhrase(text=token, singular_form=singular))
        return phrases


def get_analyzer(name: str = "rules") -> MorphologicalAnalyzer:
    """Analyzer for the configured backend."""
    if name == "wordnet":
        return WordNetAnalyzer()
    if name == "rules":
        return RuleBasedAnalyzer()
    raise ValueError(f"Unknown morphology backend: {name}")
