"""
Tests for transcripts: PGN loading, clock parsing and validation.
"""

import unittest
from dataclasses import replace

import chess

from game_review.errors import MalformedTranscript
from game_review.phases import segment_phases
from game_review.transcript import (
    Transcript,
    parse_clock_comment,
    parse_increment,
    validate_transcript,
)

from oracle_stub import RUY_LOPEZ, judged, make_transcript, play


SAMPLE_PGN = """[Event "Casual Blitz"]
[White "alice"]
[Black "bob"]
[Result "1-0"]
[TimeControl "180+2"]

1. e4 { [%clk 0:03:00] } 1... e5 { [%clk 0:03:00] } 2. Nf3 { [%clk 0:02:55] }
2... Nc6 { [%clk 0:02:50] } 3. Bb5 { [%clk 0:02:56] } 1-0
"""


class TestClockParsing(unittest.TestCase):
    """Clock comments and time control headers."""

    def test_parse_clock_comment(self):
        self.assertEqual(parse_clock_comment("[%clk 0:03:00]"), 180.0)
        self.assertEqual(parse_clock_comment("good move [%clk 1:00:05.5]"), 3605.5)
        self.assertIsNone(parse_clock_comment("no clock here"))
        self.assertIsNone(parse_clock_comment(None))

    def test_parse_increment(self):
        self.assertEqual(parse_increment("180+2"), 2.0)
        self.assertEqual(parse_increment("600"), 0.0)
        self.assertEqual(parse_increment(None), 0.0)
        self.assertEqual(parse_increment("-"), 0.0)


class TestFromPgn(unittest.TestCase):
    """Transcript.from_pgn replays the mainline."""

    def setUp(self):
        self.transcript = Transcript.from_pgn(SAMPLE_PGN, player_color="black")

    def test_moves_and_metadata(self):
        t = self.transcript
        self.assertEqual(len(t), 5)
        self.assertEqual(t.player_color, "black")
        self.assertEqual(t.result, "1-0")
        self.assertEqual([m.uci for m in t], ["e2e4", "e7e5", "g1f3", "b8c6", "f1b5"])
        self.assertEqual([m.move_number for m in t], [1, 1, 2, 2, 3])
        self.assertEqual(t.last_move_number, 3)
        self.assertEqual(t.initial_fen, chess.STARTING_FEN)

    def test_time_spent_from_clocks_with_increment(self):
        """Same-colour clock difference plus increment; first move unknown."""
        times = [m.time_spent for m in self.transcript]
        self.assertEqual(times, [None, None, 7.0, 12.0, 1.0])

    def test_game_id_is_stable_hash(self):
        again = Transcript.from_pgn(SAMPLE_PGN, player_color="black")
        self.assertEqual(self.transcript.game_id, again.game_id)
        self.assertEqual(len(self.transcript.game_id), 16)

    def test_explicit_game_id(self):
        t = Transcript.from_pgn(SAMPLE_PGN, game_id="abc")
        self.assertEqual(t.game_id, "abc")

    def test_replayed_transcript_validates(self):
        validate_transcript(self.transcript)

    def test_empty_text_rejected(self):
        with self.assertRaises(MalformedTranscript):
            Transcript.from_pgn("")


class TestValidation(unittest.TestCase):
    """validate_transcript raises on the first inconsistency."""

    def setUp(self):
        self.transcript = make_transcript(RUY_LOPEZ[:6])

    def _with_move(self, index, **changes):
        moves = list(self.transcript.moves)
        moves[index] = replace(moves[index], **changes)
        return replace(self.transcript, moves=tuple(moves))

    def test_valid_transcript_passes(self):
        validate_transcript(self.transcript)

    def test_position_helpers(self):
        t = self.transcript
        self.assertEqual(len(t.positions), len(t) + 1)
        self.assertEqual(t.position_before(0), t.initial_fen)
        self.assertEqual(t.position_before(3), t.moves[2].fen)

    def test_illegal_move(self):
        bad = self._with_move(2, uci="g1g5")
        with self.assertRaises(MalformedTranscript) as ctx:
            validate_transcript(bad)
        self.assertEqual(ctx.exception.ply, 3)
        self.assertEqual(ctx.exception.to_dict()["code"], "malformed_transcript")

    def test_fen_mismatch(self):
        bad = self._with_move(1, fen=chess.STARTING_FEN)
        with self.assertRaises(MalformedTranscript) as ctx:
            validate_transcript(bad)
        self.assertEqual(ctx.exception.ply, 2)

    def test_color_out_of_sequence(self):
        bad = self._with_move(1, color="white")
        with self.assertRaises(MalformedTranscript):
            validate_transcript(bad)

    def test_ply_gap(self):
        bad = self._with_move(3, ply=7)
        with self.assertRaises(MalformedTranscript):
            validate_transcript(bad)

    def test_negative_time(self):
        bad = self._with_move(0, time_spent=-1.0)
        with self.assertRaises(MalformedTranscript):
            validate_transcript(bad)

    def test_unparseable_uci(self):
        bad = self._with_move(0, uci="zz99")
        with self.assertRaises(MalformedTranscript):
            validate_transcript(bad)

    def test_bad_initial_fen(self):
        bad = replace(self.transcript, initial_fen="not a fen")
        with self.assertRaises(MalformedTranscript):
            validate_transcript(bad)

    def test_unknown_player_color(self):
        bad = replace(self.transcript, player_color="green")
        with self.assertRaises(MalformedTranscript):
            validate_transcript(bad)

    def test_wrong_san(self):
        bad = self._with_move(2, san="Nc3")
        with self.assertRaises(MalformedTranscript) as ctx:
            validate_transcript(bad)
        self.assertEqual(ctx.exception.ply, 3)

    def test_wrong_move_number(self):
        bad = self._with_move(2, move_number=3)
        with self.assertRaises(MalformedTranscript) as ctx:
            validate_transcript(bad)
        self.assertEqual(ctx.exception.ply, 3)


class TestMoveNumbers(unittest.TestCase):
    """Full-move numbers follow the starting position, not the ply."""

    BLACK_AT_TWENTY = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 20"

    def _unnumbered(self, ucis, initial_fen):
        moves = [replace(m, move_number=None) for m in play(ucis, initial_fen)]
        return Transcript(game_id="numbered", moves=tuple(moves),
                          player_color="black", initial_fen=initial_fen)

    def test_standard_start(self):
        t = self._unnumbered(RUY_LOPEZ[:5], chess.STARTING_FEN)
        self.assertEqual([m.move_number for m in t], [1, 1, 2, 2, 3])
        validate_transcript(t)

    def test_black_to_move_start(self):
        t = self._unnumbered(["e7e5", "g1f3", "b8c6"], self.BLACK_AT_TWENTY)
        self.assertEqual([m.move_number for m in t], [20, 21, 21])
        self.assertEqual(t.last_move_number, 21)
        validate_transcript(t)

    def test_ply_based_numbers_rejected(self):
        moves = [replace(m, move_number=(m.ply + 1) // 2)
                 for m in play(["e7e5", "g1f3"], self.BLACK_AT_TWENTY)]
        t = Transcript(game_id="bad", moves=tuple(moves), initial_fen=self.BLACK_AT_TWENTY)
        with self.assertRaises(MalformedTranscript) as ctx:
            validate_transcript(t)
        self.assertEqual(ctx.exception.ply, 1)

    def test_moves_land_in_middlegame(self):
        t = self._unnumbered(["e7e5", "g1f3", "b8c6"], self.BLACK_AT_TWENTY)
        analyzed = [judged(m, 0, 0, 0) for m in t]
        opening, middlegame, _ = segment_phases(analyzed, "black", t.last_move_number)
        self.assertIsNone(opening.accuracy)
        self.assertEqual((middlegame.start, middlegame.end), (13, 21))
        self.assertEqual(middlegame.move_count, 2)
        self.assertEqual(middlegame.accuracy, 100.0)


if __name__ == "__main__":
    unittest.main()
