import json

import pytest

from escapequiz.errors import Conflict, InvalidArgument
from escapequiz.models import AnswerKey, Question
from escapequiz.services.game_control import get_game_config, start_game
from escapequiz.services.questions import list_questions, parse_question_payload, upload_questions


def test_parse_accepts_wrapped_and_bare_lists(app_ctx, questions_payload):
    wrapped, skipped = parse_question_payload(questions_payload)
    assert skipped == 0
    assert [q['id'] for q in wrapped] == ['1a', '1b', '1c']
    assert wrapped[2]['nextQuestionId'] is None

    bare, _ = parse_question_payload(json.dumps(questions_payload['questions']).encode('utf-8'))
    assert bare == wrapped


def test_parse_skips_incomplete_and_duplicate_entries(app_ctx):
    accepted, skipped = parse_question_payload([
        {'id': 'a', 'correctAnswer': 'x', 'nextQuestionId': '  '},
        {'id': 'b'},
        {'correctAnswer': 'y'},
        {'id': 'c', 'correctAnswer': '   '},
        {'id': 'a', 'correctAnswer': 'again'},
        'not a question',
        {'id': 7, 'correctAnswer': 42},
    ])
    assert skipped == 5
    assert accepted[0] == {'id': 'a', 'title': None, 'prompt': None, 'correctAnswer': 'x', 'nextQuestionId': None}
    assert accepted[1]['id'] == '7'
    assert accepted[1]['correctAnswer'] == '42'


@pytest.mark.parametrize('payload', [b'{not json', '{"questions": 3}', 12, b'\xff\xfe'])
def test_parse_rejects_malformed_payloads(app_ctx, payload):
    with pytest.raises(InvalidArgument):
        parse_question_payload(payload)


def test_upload_replaces_question_set(app_ctx, questions_payload):
    result = upload_questions(questions_payload)
    assert result == {'accepted': 3, 'skipped': 0, 'total_questions': 3}
    config = get_game_config()
    assert config.total_questions == 3
    assert config.first_question_id == '1a'

    upload_questions([{'id': 'solo', 'title': 'Only', 'correctAnswer': 'yes'}])
    assert [q.id for q in Question.query.all()] == ['solo']
    assert AnswerKey.query.count() == 1
    assert get_game_config().first_question_id == 'solo'


def test_listing_never_exposes_answers(app_ctx, questions_payload):
    upload_questions(questions_payload)
    rows = list_questions()
    assert [r['id'] for r in rows] == ['1a', '1b', '1c']
    for row in rows:
        assert row['has_answer'] is True
        assert 'correctAnswer' not in row
        assert 'correct_answer' not in row


def test_upload_rejected_while_running(app_ctx, questions_payload):
    upload_questions(questions_payload)
    start_game(now=1.0)
    with pytest.raises(Conflict):
        upload_questions([{'id': 'x', 'correctAnswer': 'y'}])
    assert Question.query.count() == 3
