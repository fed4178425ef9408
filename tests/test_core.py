"""Unit tests for config helpers, answer matching, models, catalog and pools."""

import asyncio
import json
import os
import random
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from core.catalog import WordCatalog, parse_world_data
from core.config import (
    DEFAULT_SPEED, MAX_STAGE_BOOST_COPIES,
    get_world_config, get_stage_id, parse_stage_id, calculate_speed,
    speed_modifier_for_accuracy, get_next_stage, get_previous_stage
)
from core.matcher import (
    normalize, is_prefix_match, answers_match, SPANISH_NUMBERS, KOREAN_NUMBERS
)
from core.models import PoolEntry, StageResult, StageWord, WrongWordRecord, PlayerStats
from core.pools import WordPoolBuilder, pick_random_word

from fakes import make_catalog, make_store, make_world, make_stage


# ============================================================================
# Config
# ============================================================================

class TestStageIds(unittest.TestCase):

    def test_round_trip(self):
        for world_id, stage_num in [(1, 1), (3, 17), (10, 33), (123, 4567)]:
            self.assertEqual(parse_stage_id(get_stage_id(world_id, stage_num)), (world_id, stage_num))

    def test_format(self):
        self.assertEqual(get_stage_id(2, 5), "2-5")

    def test_parse_rejects_garbage(self):
        for bad in ["", "1", "1-2-3", "a-b"]:
            with self.assertRaises(ValueError):
                parse_stage_id(bad)


class TestWorldConfig(unittest.TestCase):

    def test_lookup(self):
        world = get_world_config(1)
        self.assertEqual(world.id, 1)
        self.assertEqual(world.stage_count, 33)

    def test_unknown_world(self):
        self.assertIsNone(get_world_config(0))
        self.assertIsNone(get_world_config(11))
        self.assertIsNone(get_world_config(-3))

    def test_calculate_speed(self):
        # world 1: base 0.3, increment 0.015
        self.assertAlmostEqual(calculate_speed(1, 1, 0), 0.3)
        self.assertAlmostEqual(calculate_speed(1, 3, 0), 0.34)
        self.assertAlmostEqual(calculate_speed(1, 1, 0.5), 0.3 + 0.5 * 0.015 * 10)

    def test_calculate_speed_unknown_world_defaults(self):
        self.assertEqual(calculate_speed(99, 1, 0.5), DEFAULT_SPEED)

    def test_speed_modifier(self):
        self.assertEqual(speed_modifier_for_accuracy(None), 1.0)
        self.assertEqual(speed_modifier_for_accuracy(59), 0.50)
        self.assertEqual(speed_modifier_for_accuracy(60), 0.65)
        self.assertEqual(speed_modifier_for_accuracy(74), 0.65)
        self.assertEqual(speed_modifier_for_accuracy(84), 0.80)
        self.assertEqual(speed_modifier_for_accuracy(85), 1.0)
        self.assertEqual(speed_modifier_for_accuracy(100), 1.0)

    def test_next_stage(self):
        self.assertEqual(get_next_stage(1, 1), (1, 2))
        self.assertEqual(get_next_stage(1, 33), (2, 1))
        self.assertIsNone(get_next_stage(10, 33))
        self.assertIsNone(get_next_stage(42, 1))

    def test_previous_stage(self):
        self.assertIsNone(get_previous_stage(1, 1))
        self.assertEqual(get_previous_stage(1, 5), (1, 4))
        self.assertEqual(get_previous_stage(2, 1), (1, 33))

    def test_previous_stage_of_unknown_world(self):
        self.assertIsNone(get_previous_stage(12, 1))
        self.assertEqual(get_previous_stage(12, 4), (12, 3))


# ============================================================================
# Answer matching
# ============================================================================

class TestNormalize(unittest.TestCase):

    def test_strips_punctuation_and_case(self):
        self.assertEqual(normalize("¡Hola!"), "hola")
        self.assertEqual(normalize("¿Qué tal?"), "qué tal")
        self.assertEqual(normalize('"Casa."'), "casa")

    def test_collapses_whitespace(self):
        self.assertEqual(normalize("  buenos    días \t"), "buenos días")

    def test_idempotent(self):
        samples = [
            "¡Hola, Mundo!", "  por   favor ", "Dieciséis.", "안녕 하세요!!",
            "", "   ", "a,b;c:d", "¿¡?!", "MAÑANA", "l'eau \"x\""
        ]
        for text in samples:
            once = normalize(text)
            self.assertEqual(normalize(once), once)


class TestAnswersMatch(unittest.TestCase):

    def test_exact_after_normalisation(self):
        self.assertTrue(answers_match("casa", "Casa."))
        self.assertTrue(answers_match("buenos días", "  Buenos   días! "))

    def test_different_words(self):
        self.assertFalse(answers_match("perro", "gato"))

    def test_spanish_numerals_both_directions(self):
        self.assertTrue(answers_match("18", "dieciocho"))
        self.assertTrue(answers_match("dieciocho", "18"))
        self.assertTrue(answers_match("veintiuno", "21"))
        self.assertTrue(answers_match("Dieciséis", "16"))
        self.assertTrue(answers_match("dieciseis", "16"))

    def test_spanish_compound_numerals(self):
        self.assertTrue(answers_match("treinta y uno", "31"))
        self.assertTrue(answers_match("99", "noventa y nueve"))
        self.assertTrue(answers_match("ciento uno", "101"))
        self.assertTrue(answers_match("doscientas cincuenta", "250"))
        self.assertTrue(answers_match("cien", "100"))
        self.assertTrue(answers_match("mil", "1000"))

    def test_spanish_table_covers_zero_to_thousand(self):
        values = set(SPANISH_NUMBERS.values())
        for n in range(0, 1001):
            self.assertIn(str(n), values)

    def test_korean_numerals(self):
        self.assertTrue(answers_match("열여덟", "18"))
        self.assertTrue(answers_match("18", "십팔"))
        self.assertTrue(answers_match("스물둘", "22"))
        self.assertTrue(answers_match("다섯", "5"))

    def test_korean_table_covers_native_and_sino(self):
        for n in range(1, 23):
            digits = str(n)
            self.assertGreaterEqual(list(KOREAN_NUMBERS.values()).count(digits), 2)

    def test_numeral_tables_are_read_only(self):
        with self.assertRaises(TypeError):
            SPANISH_NUMBERS['once'] = '12'

    def test_numeral_mismatch(self):
        self.assertFalse(answers_match("dieciocho", "17"))
        self.assertFalse(answers_match("열여덟", "dieciocho"))


class TestPrefixMatch(unittest.TestCase):

    def test_prefix(self):
        self.assertTrue(is_prefix_match("buenos días", "Buen"))
        self.assertTrue(is_prefix_match("안녕", "안"))

    def test_empty_input_never_matches(self):
        self.assertFalse(is_prefix_match("casa", ""))
        self.assertFalse(is_prefix_match("casa", "  !"))

    def test_not_a_prefix(self):
        self.assertFalse(is_prefix_match("casa", "ca sa"))
        self.assertFalse(is_prefix_match("casa", "asa"))


# ============================================================================
# Models
# ============================================================================

class TestModels(unittest.TestCase):

    def test_stage_result_is_beaten_by(self):
        result = StageResult(2, 500)
        self.assertTrue(result.is_beaten_by(3, 100))
        self.assertTrue(result.is_beaten_by(2, 501))
        self.assertFalse(result.is_beaten_by(2, 500))
        self.assertFalse(result.is_beaten_by(1, 9999))

    def test_stage_result_round_trip(self):
        result = StageResult(3, 1200, 100, '2026-01-01T00:00:00+00:00')
        restored = StageResult.from_dict(result.to_dict())
        self.assertEqual(restored.stars, 3)
        self.assertEqual(restored.best_score, 1200)
        self.assertEqual(restored.last_accuracy, 100)

    def test_wrong_word_from_dict_defaults(self):
        record = WrongWordRecord.from_dict({'es': 'gato'})
        self.assertEqual(record.korean, '')
        self.assertEqual(record.wrong_count, 1)

    def test_player_stats_defaults(self):
        stats = PlayerStats.from_dict({})
        self.assertEqual(stats.total_games, 0)
        self.assertIsNone(stats.last_play_date)

    def test_pool_entry_equality(self):
        self.assertEqual(PoolEntry('a', 'b', True), PoolEntry('a', 'b', True))
        self.assertNotEqual(PoolEntry('a', 'b', True), PoolEntry('a', 'b', False))


# ============================================================================
# Catalog
# ============================================================================

class TestWordCatalog(unittest.TestCase):

    def test_not_loaded_returns_empty(self):
        catalog = WordCatalog()
        self.assertFalse(catalog.is_loaded())
        self.assertEqual(catalog.get_stage_words(1, 1), [])

    def test_stage_words(self):
        catalog = make_catalog()
        words = catalog.get_stage_words(1, 2)
        self.assertEqual(len(words), 10)
        self.assertEqual(words[0], StageWord('s2w0', 's2w-ko0'))

    def test_missing_stage_or_world(self):
        catalog = make_catalog()
        self.assertEqual(catalog.get_stage_words(1, 99), [])
        self.assertEqual(catalog.get_stage_words(5, 1), [])
        self.assertEqual(catalog.get_stage_words(1, 0), [])

    def test_category_and_fallbacks(self):
        catalog = make_catalog({1: {'stages': [make_stage('a', category='  Saludos '), make_stage('b')]}})
        self.assertEqual(catalog.get_stage_category(1, 1), 'Saludos')
        self.assertEqual(catalog.get_stage_category(1, 2), '생존·기초기능어 2')
        self.assertEqual(catalog.get_stage_category(99, 3), 'Stage 3')

    def test_boss_and_review_stages(self):
        catalog = make_catalog()
        self.assertTrue(catalog.is_boss_stage(1, 11))
        self.assertTrue(catalog.is_boss_stage(1, 22))
        self.assertFalse(catalog.is_boss_stage(1, 10))
        self.assertTrue(catalog.is_review_stage(1, 5))
        self.assertTrue(catalog.is_review_stage(1, 10))
        self.assertFalse(catalog.is_review_stage(1, 7))

    def test_boss_takes_precedence_over_review(self):
        catalog = make_catalog()
        self.assertTrue(catalog.is_boss_stage(1, 55))
        self.assertFalse(catalog.is_review_stage(1, 55))

    def test_word_counts(self):
        catalog = make_catalog({1: make_world(3, 10), 2: make_world(2, 4)})
        self.assertEqual(catalog.get_total_word_count(), 38)
        words = catalog.get_all_world_words(2)
        self.assertEqual(len(words), 8)
        self.assertEqual(words[-1]['stage'], 2)
        self.assertEqual(catalog.loaded_worlds, [1, 2])

    def test_parse_rejects_bad_shape(self):
        with self.assertRaises(ValueError):
            parse_world_data({'levels': []})
        with self.assertRaises(ValueError):
            parse_world_data({'stages': ['oops']})

    def test_parse_skips_incomplete_words(self):
        stages = parse_world_data({'stages': [{'words': [{'es': 'a', 'ko': 'b'}, {'es': 'c'}]}]})
        self.assertEqual(stages[0]['words'], [StageWord('a', 'b')])


class TestCatalogLoading(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def _write(self, name: str, content: str):
        with open(os.path.join(self.tmp.name, name), 'w', encoding='utf-8') as f:
            f.write(content)

    def test_partial_failure_tolerated(self):
        self._write('world1.json', json.dumps(make_world(2)))
        self._write('world2.json', '{not json')
        catalog = WordCatalog()

        ok = asyncio.run(catalog.load_all(self.tmp.name, world_ids=[1, 2, 3]))

        self.assertTrue(ok)
        self.assertEqual(catalog.loaded_worlds, [1])
        self.assertEqual(len(catalog.get_stage_words(1, 2)), 10)
        self.assertEqual(catalog.get_stage_words(2, 1), [])

    def test_total_failure_reported(self):
        catalog = WordCatalog()
        ok = asyncio.run(catalog.load_all(self.tmp.name, world_ids=[1, 2]))
        self.assertFalse(ok)
        self.assertFalse(catalog.is_loaded())

    def test_loads_from_http_source(self):
        response = MagicMock()
        response.json.return_value = make_world(1)
        with patch('core.catalog.requests.get', return_value=response) as mock_get:
            catalog = WordCatalog()
            ok = asyncio.run(catalog.load_all('http://words.example/data/', world_ids=[4]))

        self.assertTrue(ok)
        mock_get.assert_called_once()
        self.assertEqual(mock_get.call_args[0][0], 'http://words.example/data/world4.json')
        self.assertEqual(len(catalog.get_stage_words(4, 1)), 10)


# ============================================================================
# Pools
# ============================================================================

class TestWordPool(unittest.TestCase):

    def setUp(self):
        self.catalog = make_catalog()
        self.store = make_store()
        self.builder = WordPoolBuilder(self.catalog, self.store)

    def _record_wrong(self, spanish: str, korean: str, times: int):
        for _ in range(times):
            self.store.record_wrong_word(spanish, korean)

    def test_plain_pool_has_each_word_once(self):
        pool = self.builder.create_word_pool(1, 1)
        self.assertEqual(len(pool), 10)
        self.assertTrue(all(not e.is_review for e in pool))
        self.assertEqual(len({e.spanish for e in pool}), 10)

    def test_stage_wrong_word_is_boosted(self):
        self._record_wrong('s1w3', 's1w-ko3', 4)
        pool = self.builder.create_word_pool(1, 1)

        copies = [e for e in pool if e.spanish == 's1w3']
        self.assertEqual(len(copies), 9)
        self.assertEqual(sum(1 for e in copies if e.is_review), 8)
        self.assertEqual(len(pool), 18)

    def test_stage_boost_is_capped(self):
        self._record_wrong('s1w0', 's1w-ko0', 7)
        pool = self.builder.create_word_pool(1, 1)
        reviews = [e for e in pool if e.spanish == 's1w0' and e.is_review]
        self.assertEqual(len(reviews), MAX_STAGE_BOOST_COPIES)

    def test_other_stage_wrong_words_fold_in(self):
        self._record_wrong('s2w1', 's2w-ko1', 1)
        self._record_wrong('s3w2', 's3w-ko2', 2)
        self._record_wrong('s3w5', 's3w-ko5', 6)
        pool = self.builder.create_word_pool(1, 1)

        count = lambda es: sum(1 for e in pool if e.spanish == es)
        self.assertEqual(count('s2w1'), 1)
        self.assertEqual(count('s3w2'), 2)
        self.assertEqual(count('s3w5'), 3)
        self.assertTrue(all(e.is_review for e in pool if e.spanish.startswith('s3')))

    def test_review_pool_needs_enough_words(self):
        for i in range(4):
            self._record_wrong(f's2w{i}', f's2w-ko{i}', 1)
        self.assertEqual(self.builder.create_review_pool(), [])

    def test_review_pool_weights(self):
        for i in range(5):
            self._record_wrong(f's2w{i}', f's2w-ko{i}', i + 1)
        pool = self.builder.create_review_pool()
        # 1 + wrong_count copies each: 2 + 3 + 4 + 5 + 6
        self.assertEqual(len(pool), 20)
        self.assertTrue(all(e.is_review for e in pool))
        self.assertEqual(sum(1 for e in pool if e.spanish == 's2w4'), 6)

    def test_review_pool_takes_top_ten(self):
        for i in range(12):
            self._record_wrong(f'x{i}', f'ko{i}', 1 if i < 2 else 2)
        pool = self.builder.create_review_pool()
        self.assertEqual(len({e.spanish for e in pool}), 10)
        self.assertNotIn('x0', {e.spanish for e in pool})

    def test_boss_pool_recalls_episode(self):
        catalog = make_catalog({1: make_world(11, 3)})
        builder = WordPoolBuilder(catalog, self.store)
        pool = builder.create_boss_pool(1, 11)
        stages = {e.spanish.split('w')[0] for e in pool}
        self.assertEqual(stages, {f's{n}' for n in range(1, 12)})
        self.assertEqual(len(pool), 33)

    def test_boss_pool_recall_window(self):
        catalog = make_catalog({1: make_world(11, 3)})
        builder = WordPoolBuilder(catalog, self.store)
        pool = builder.create_boss_pool(1, 11, recall_window=2)
        self.assertEqual({e.spanish.split('w')[0] for e in pool}, {'s9', 's10', 's11'})

    def test_boss_pool_dedupes_and_boosts(self):
        data = {'stages': [make_stage('dup', 2), make_stage('dup', 2)]}
        builder = WordPoolBuilder(make_catalog({1: data}), self.store)
        self._record_wrong('dup0', 'dup-ko0', 1)
        pool = builder.create_boss_pool(1, 2)
        self.assertEqual(sum(1 for e in pool if not e.is_review), 2)
        self.assertEqual(sum(1 for e in pool if e.is_review), 2)


class TestPickRandomWord(unittest.TestCase):

    def test_excludes_words_on_screen(self):
        pool = [PoolEntry('a', '1'), PoolEntry('b', '2'), PoolEntry('a', '1', True)]
        rng = random.Random(7)
        for _ in range(50):
            self.assertEqual(pick_random_word(pool, ['a'], rng).spanish, 'b')

    def test_none_when_everything_excluded(self):
        pool = [PoolEntry('a', '1'), PoolEntry('b', '2')]
        self.assertIsNone(pick_random_word(pool, ['a', 'b']))
        self.assertIsNone(pick_random_word([], []))

    def test_duplicates_weight_the_draw(self):
        pool = [PoolEntry('a', '1')] * 9 + [PoolEntry('b', '2')]
        rng = random.Random(1)
        draws = [pick_random_word(pool, rng=rng).spanish for _ in range(2000)]
        self.assertGreater(draws.count('a'), draws.count('b') * 4)


if __name__ == '__main__':
    unittest.main()
