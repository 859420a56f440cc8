"""
Keyword and pattern tables
==========================
All vocabularies and compiled regexes used by the classifiers and extractors
live in one immutable PatternTables value. Components receive it at
construction, so an alternate regional vocabulary is just another instance:

    tables = PatternTables.from_vocabulary({"cities": ["kathmandu"]})
    classifier = ReceiptTypeClassifier(tables)

The defaults are tuned for Indian receipts (₹ / Rs / INR, GST, 10-digit
mobile numbers, 6-digit PIN codes).
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Pattern, Tuple


# ─── Default vocabulary ───────────────────────────────────────────────────────

DEFAULT_VOCABULARY: Dict[str, Tuple[str, ...]] = {
    "cities": (
        "delhi", "new delhi", "mumbai", "navi mumbai", "bangalore", "bengaluru",
        "chennai", "hyderabad", "pune", "kolkata", "ahmedabad", "jaipur",
        "lucknow", "kanpur", "nagpur", "indore", "thane", "bhopal",
        "visakhapatnam", "patna", "vadodara", "surat", "ghaziabad", "ludhiana",
        "agra", "nashik", "faridabad", "meerut", "rajkot", "varanasi",
        "srinagar", "aurangabad", "amritsar", "allahabad", "ranchi", "howrah",
        "coimbatore", "jabalpur", "gwalior", "vijayawada", "jodhpur", "madurai",
        "raipur", "kota", "guwahati", "chandigarh", "solapur", "hubli",
        "mysore", "gurgaon", "gurugram", "noida", "bhubaneswar", "salem",
        "warangal", "guntur", "dehradun", "kochi", "mangalore", "udaipur",
        "jammu", "bhavnagar", "jamnagar", "anand", "gandhinagar", "goa",
    ),
    "food_terms": (
        "biryani", "curry", "dal", "rice", "roti", "naan", "chapati", "dosa",
        "idli", "sambar", "rasam", "paneer", "chicken", "mutton", "fish",
        "prawn", "tandoori", "masala", "gravy", "fry", "roast", "kebab",
        "tikka", "korma", "vindaloo", "butter", "palak", "aloo", "gobi",
        "bhindi", "lassi", "chai", "coffee", "juice", "water", "soda", "coke",
        "pepsi", "sprite", "limca", "maaza", "frooti", "makhani", "thali",
    ),
    "item_terms": (
        "tea", "beer", "wine", "starter", "main", "dessert", "special", "combo",
        "meal", "plate", "bowl", "cup", "glass", "bottle", "can", "veg",
        "non-veg",
    ),
    "business_terms": (
        "restaurant", "hotel", "cafe", "bar", "dhaba", "kitchen", "foods",
        "corner", "palace", "garden", "house", "inn", "store", "shop", "mart",
        "center", "centre", "corporation", "company", "ltd", "pvt", "depot",
        "transport", "travels", "enterprises", "traders", "bakery", "sweets",
    ),
    "header_words": (
        "item", "items", "qty", "quantity", "price", "rate", "amount", "amt",
        "description", "particulars", "sl", "no", "s.no", "bill", "receipt",
        "invoice", "tax invoice", "cash memo",
    ),
    "address_words": (
        "road", "rd", "street", "st", "avenue", "lane", "nagar", "colony",
        "sector", "block", "marg", "floor", "building", "complex", "plot",
        "near", "opp", "pin", "pincode", "chowk", "bazaar", "market",
    ),
}

# Abbreviation → canonical operator name, checked in order
DEFAULT_TRANSPORT_OPERATORS: Tuple[Tuple[str, str], ...] = (
    ("gsrtc", "Gujarat State Road Transport Corporation (GSRTC)"),
    ("ksrtc", "Karnataka State Road Transport Corporation (KSRTC)"),
    ("msrtc", "Maharashtra State Road Transport Corporation (MSRTC)"),
    ("apsrtc", "Andhra Pradesh State Road Transport Corporation (APSRTC)"),
    ("tsrtc", "Telangana State Road Transport Corporation (TSRTC)"),
    ("upsrtc", "Uttar Pradesh State Road Transport Corporation (UPSRTC)"),
    ("rsrtc", "Rajasthan State Road Transport Corporation (RSRTC)"),
    ("hrtc", "Himachal Road Transport Corporation (HRTC)"),
)


def _word_regex(terms: Iterable[str], plural: bool = False) -> Pattern:
    """Case-insensitive alternation of whole words, longest first."""
    ordered = sorted({t.lower() for t in terms if t}, key=len, reverse=True)
    body = "|".join(re.escape(t).replace(r"\ ", r"\s*") for t in ordered)
    suffix = r"(?:s|es)?" if plural else ""
    return re.compile(r"(?<!\w)(?:" + body + ")" + suffix + r"(?!\w)", re.IGNORECASE)


# ─── Tables ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PatternTables:
    cities: Pattern
    food_terms: Pattern
    item_terms: Pattern
    business_terms: Pattern
    header_line: Pattern
    header_keyword: Pattern
    address_words: Pattern
    postal_code: Pattern

    currency: Pattern
    tax: Pattern
    total: Pattern
    subtotal: Pattern
    service_charge: Pattern
    total_word: Pattern
    phone: Pattern
    email: Pattern
    website: Pattern
    gstin: Pattern
    price_like: Pattern

    transport_keywords: Pattern
    bus_ticket: Pattern
    train_ticket: Pattern
    transport_operators: Tuple[Tuple[str, str], ...]

    quantity: Pattern
    non_item: Pattern

    def looks_like_address(self, text: str) -> bool:
        return bool(self.address_words.search(text) or self.postal_code.search(text))

    @classmethod
    def default(cls) -> "PatternTables":
        return cls.from_vocabulary(None)

    @classmethod
    def from_vocabulary(cls, overrides: Optional[Dict[str, Iterable[str]]] = None) -> "PatternTables":
        """
        Build tables from the default vocabulary with extra terms appended.

        Args:
            overrides: mapping of vocabulary name (see DEFAULT_VOCABULARY)
                       to additional terms. Unknown names are ignored.
        """
        vocab = {name: tuple(terms) for name, terms in DEFAULT_VOCABULARY.items()}
        for name, extra in (overrides or {}).items():
            if name in vocab and extra:
                vocab[name] = vocab[name] + tuple(str(t).lower() for t in extra)

        operators = DEFAULT_TRANSPORT_OPERATORS
        op_abbrevs = [abbr for abbr, _ in operators]

        header_words = vocab["header_words"]
        header_body = "|".join(re.escape(w) for w in sorted(header_words, key=len, reverse=True))

        return cls(
            cities=_word_regex(vocab["cities"]),
            food_terms=_word_regex(vocab["food_terms"], plural=True),
            item_terms=_word_regex(vocab["item_terms"], plural=True),
            business_terms=_word_regex(vocab["business_terms"], plural=True),
            # A line made only of column-header words, e.g. "Item Qty Price"
            header_line=re.compile(
                rf"^\s*(?:(?:{header_body})\.?[\s:/#-]*)+$", re.IGNORECASE),
            header_keyword=re.compile(r"\b(?:bill|receipt|invoice|order)\b", re.IGNORECASE),
            address_words=_word_regex(vocab["address_words"]),
            postal_code=re.compile(r"(?<!\d)\d{6}(?!\d)"),

            currency=re.compile(r"₹|\brs\b\.?|\binr\b|\brupees?\b", re.IGNORECASE),
            tax=re.compile(r"\b(?:gst|vat|tax|cgst|sgst|igst|utgst|cess)\b", re.IGNORECASE),
            total=re.compile(
                r"\bgrand\s*total\b|\bnet\s*total\b|\btotal\b|\bamount\s*(?:payable|due)\b"
                r"|\bfinal\s*amount\b|\bfare\b", re.IGNORECASE),
            subtotal=re.compile(
                r"\bsub\s*-?\s*total\b|\bnet\s*amount\b|\bbasic\s*amount\b|\bbase\s*fare\b"
                r"|\btaxable\s*(?:amount|value)\b", re.IGNORECASE),
            service_charge=re.compile(r"\bservice\s*charges?\b|\bsvc\b|\btips?\b", re.IGNORECASE),
            total_word=re.compile(r"\btotal\b|\bamount\b", re.IGNORECASE),
            phone=re.compile(
                r"(?<!\d)(?:\+91[\s-]?)?[6-9]\d{9}(?!\d)|(?<![\d.])\d{2,4}[-\s]?\d{6,8}(?![\d.])"),
            email=re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"),
            website=re.compile(
                r"(?:https?://|www\.)[\w.-]+\.[a-z]{2,}(?:/\S*)?"
                r"|\b[\w-]+(?:\.[\w-]+)*\.(?:com|in|co\.in|net|org|biz)\b", re.IGNORECASE),
            gstin=re.compile(r"\b\d{2}[A-Z]{5}\d{4}[A-Z][A-Z\d]Z[A-Z\d]\b"),
            price_like=re.compile(r"(?:₹|\brs\.?|\binr)\s*\d|\d+[.,]\d{2}\b", re.IGNORECASE),

            transport_keywords=re.compile(
                r"\b(?:bus|train|ticket|passenger|journey|depot|station|platform|seat|berth"
                r"|coach|fare|roadways|transport|" + "|".join(op_abbrevs) + r")\b",
                re.IGNORECASE),
            bus_ticket=re.compile(
                r"\b(?:" + "|".join(op_abbrevs) + r"|bus|depot)\b|\bpassenger\s*ticket\b",
                re.IGNORECASE),
            train_ticket=re.compile(
                r"\birctc\b|\bindian\s*railways?\b|\btrain\b|\bplatform\b|\bcoach\b|\bberth\b|\bpnr\b",
                re.IGNORECASE),
            transport_operators=operators,

            quantity=re.compile(
                r"(?<![\w.])(\d{1,3})\s*(?:x|qty|pcs?|nos?)\b|\bx\s*(\d{1,3})\b|\bqty\s*:?\s*(\d{1,3})\b",
                re.IGNORECASE),
            non_item=re.compile(
                r"^(?:date|time|bill|receipt|invoice|order|table|server|cashier"
                r"|thank\s*you|thanks|visit\s*again|welcome"
                r"|gst|vat|tax|service\s*charge|tip"
                r"|sub\s*total|total|amount|balance|change)\b"
                r"|^\d+/\d+/\d+|^\d{1,2}:\d{2}",
                re.IGNORECASE),
        )


def count_terms(pattern: Pattern, text: str) -> int:
    """Number of distinct vocabulary terms from pattern present in text."""
    return len({m.group(0).lower() for m in pattern.finditer(text)})
