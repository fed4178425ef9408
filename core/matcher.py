"""Answer normalisation and comparison, including numeral-word equivalence."""

import re
from types import MappingProxyType

_PUNCTUATION_RE = re.compile(r"[¡¿!?.,;:'\"]")
_WHITESPACE_RE = re.compile(r'\s+')


def normalize(text: str) -> str:
    """Strip punctuation, collapse whitespace, trim and lowercase."""
    text = _PUNCTUATION_RE.sub('', text)
    text = _WHITESPACE_RE.sub(' ', text)
    return text.strip().lower()


# Spanish numerals 0-1000

_SPANISH_UNITS = ['cero', 'uno', 'dos', 'tres', 'cuatro', 'cinco', 'seis', 'siete', 'ocho', 'nueve']
_SPANISH_TEENS = {
    10: ['diez'], 11: ['once'], 12: ['doce'], 13: ['trece'], 14: ['catorce'], 15: ['quince'],
    16: ['dieciséis', 'dieciseis'], 17: ['diecisiete'], 18: ['dieciocho'], 19: ['diecinueve'],
}
_SPANISH_TWENTIES = {
    20: ['veinte'],
    21: ['veintiuno', 'veintiuna', 'veintiún', 'veintiun'],
    22: ['veintidós', 'veintidos'],
    23: ['veintitrés', 'veintitres'],
    24: ['veinticuatro'],
    25: ['veinticinco'],
    26: ['veintiséis', 'veintiseis'],
    27: ['veintisiete'],
    28: ['veintiocho'],
    29: ['veintinueve'],
}
_SPANISH_TENS = {
    30: 'treinta', 40: 'cuarenta', 50: 'cincuenta', 60: 'sesenta',
    70: 'setenta', 80: 'ochenta', 90: 'noventa',
}
_SPANISH_HUNDREDS = {
    100: ['ciento'],
    200: ['doscientos', 'doscientas'],
    300: ['trescientos', 'trescientas'],
    400: ['cuatrocientos', 'cuatrocientas'],
    500: ['quinientos', 'quinientas'],
    600: ['seiscientos', 'seiscientas'],
    700: ['setecientos', 'setecientas'],
    800: ['ochocientos', 'ochocientas'],
    900: ['novecientos', 'novecientas'],
}


def _spanish_below_100(n: int, compound: bool = False) -> list[str]:
    """Spelled-out variants of 0..99. In compounds 1 may also apocopate to 'un'."""
    if n < 10:
        if n == 1:
            return ['uno', 'una', 'un'] if compound else ['uno', 'una']
        return [_SPANISH_UNITS[n]]
    if n < 20:
        return _SPANISH_TEENS[n]
    if n < 30:
        return _SPANISH_TWENTIES[n]
    tens, unit = divmod(n, 10)
    tens_word = _SPANISH_TENS[tens * 10]
    if unit == 0:
        return [tens_word]
    return [f"{tens_word} y {u}" for u in _spanish_below_100(unit, compound=True)]


def _build_spanish_numbers() -> dict[str, str]:
    table = {}
    for n in range(100):
        for word in _spanish_below_100(n):
            table[word] = str(n)
    table['cien'] = '100'
    for hundred, words in _SPANISH_HUNDREDS.items():
        for word in words:
            if hundred != 100:
                table[word] = str(hundred)
            for rest in range(1, 100):
                for tail in _spanish_below_100(rest, compound=True):
                    table[f"{word} {tail}"] = str(hundred + rest)
    table['ciento'] = '100'
    table['mil'] = '1000'
    return table


# Korean numerals: Sino-Korean and native Korean

_KOREAN_NUMBERS = {
    '영': '0', '공': '0',
    '일': '1', '이': '2', '삼': '3', '사': '4', '오': '5',
    '육': '6', '칠': '7', '팔': '8', '구': '9', '십': '10',
    '십일': '11', '십이': '12', '십삼': '13', '십사': '14', '십오': '15',
    '십육': '16', '십칠': '17', '십팔': '18', '십구': '19',
    '이십': '20', '이십일': '21', '이십이': '22', '이십삼': '23',
    '이십사': '24', '이십오': '25', '이십육': '26', '이십칠': '27',
    '이십팔': '28', '이십구': '29',
    '삼십': '30', '사십': '40', '오십': '50',
    '육십': '60', '칠십': '70', '팔십': '80', '구십': '90',
    '백': '100', '이백': '200', '삼백': '300', '사백': '400',
    '오백': '500', '육백': '600', '칠백': '700', '팔백': '800', '구백': '900',
    '천': '1000',
    '하나': '1', '둘': '2', '셋': '3', '넷': '4', '다섯': '5',
    '여섯': '6', '일곱': '7', '여덟': '8', '아홉': '9', '열': '10',
    '열하나': '11', '열둘': '12', '열셋': '13', '열넷': '14', '열다섯': '15',
    '열여섯': '16', '열일곱': '17', '열여덟': '18', '열아홉': '19',
    '스물': '20', '스물하나': '21', '스물둘': '22',
}

SPANISH_NUMBERS = MappingProxyType(_build_spanish_numbers())
KOREAN_NUMBERS = MappingProxyType(dict(_KOREAN_NUMBERS))
NUMERAL_TABLES = (SPANISH_NUMBERS, KOREAN_NUMBERS)


def is_prefix_match(answer: str, current_input: str) -> bool:
    """True if the normalised input is a non-empty prefix of the normalised answer."""
    norm_input = normalize(current_input)
    return len(norm_input) > 0 and normalize(answer).startswith(norm_input)


def answers_match(answer: str, user_input: str) -> bool:
    """Exact match after normalisation, or numeral word on one side and its digits on the other."""
    norm_answer = normalize(answer)
    norm_input = normalize(user_input)

    if norm_answer == norm_input:
        return True

    for table in NUMERAL_TABLES:
        if table.get(norm_answer) == norm_input:
            return True
        if table.get(norm_input) == norm_answer:
            return True
    return False
