"""Question-pack and settings ingestion.

Turns raw JSON from the setup screen into the validated value types the
engine expects. The engine trusts what comes out of here and does not
check it again.
"""

from feud.exceptions import QuestionPackError, SettingsError
from .state import Answer, GameSettings, QuestionPack, Round

MIN_ANSWERS = 3
MAX_ANSWERS = 10


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_question_pack(data) -> list:
    """Return a list of human-readable problems; empty means valid."""
    if not isinstance(data, dict):
        return ['Invalid JSON structure']
    errors = []
    title = data.get('title')
    if not isinstance(title, str) or not title.strip():
        errors.append('Missing or invalid "title" field')

    rounds = data.get('rounds')
    if not isinstance(rounds, list):
        errors.append('Missing or invalid "rounds" array')
        return errors
    if not rounds:
        errors.append('Question pack must have at least 1 round')

    for i, rnd in enumerate(rounds, start=1):
        if not isinstance(rnd, dict):
            errors.append(f'Round {i}: Invalid round structure')
            continue
        question = rnd.get('question')
        if not isinstance(question, str) or not question.strip():
            errors.append(f'Round {i}: Missing or empty question')
        answers = rnd.get('answers')
        if not isinstance(answers, list):
            errors.append(f'Round {i}: Missing or invalid answers array')
            continue
        if not MIN_ANSWERS <= len(answers) <= MAX_ANSWERS:
            errors.append(
                f'Round {i}: Answers must be between {MIN_ANSWERS} and {MAX_ANSWERS} (found {len(answers)})'
            )
        for j, answer in enumerate(answers, start=1):
            if not isinstance(answer, dict):
                errors.append(f'Round {i}, Answer {j}: Invalid answer structure')
                continue
            text = answer.get('text')
            if not isinstance(text, str) or not text.strip():
                errors.append(f'Round {i}, Answer {j}: Missing or empty text')
            points = answer.get('points')
            if not _is_number(points) or points <= 0 or not float(points).is_integer():
                errors.append(f'Round {i}, Answer {j}: Points must be a positive whole number')
            aliases = answer.get('aliases')
            if aliases is not None and (
                    not isinstance(aliases, list) or not all(isinstance(a, str) for a in aliases)):
                errors.append(f'Round {i}, Answer {j}: Aliases must be an array of strings')
    return errors


def normalize_question_pack(data) -> QuestionPack:
    """Build a ``QuestionPack`` from already-validated JSON.

    Round ids default to ``round-N`` and answers are sorted by points,
    highest first.
    """
    rounds = []
    for i, rnd in enumerate(data['rounds'], start=1):
        answers = [
            Answer(text=a['text'].strip(), points=int(a['points']), aliases=tuple(a.get('aliases') or ()))
            for a in rnd['answers']
        ]
        answers.sort(key=lambda a: a.points, reverse=True)
        rounds.append(Round(
            id=str(rnd.get('id') or f'round-{i}'),
            question=rnd['question'].strip(),
            answers=tuple(answers),
        ))
    return QuestionPack(title=data['title'].strip(), rounds=tuple(rounds))


def load_question_pack(data) -> QuestionPack:
    errors = validate_question_pack(data)
    if errors:
        raise QuestionPackError(errors)
    return normalize_question_pack(data)


def build_settings(data, defaults: GameSettings = None) -> GameSettings:
    """Merge client settings over ``defaults`` and check the ranges."""
    defaults = defaults or GameSettings()
    data = data or {}
    if not isinstance(data, dict):
        raise SettingsError(['Settings must be an object'])
    errors = []

    def _int_field(key, fallback, minimum):
        value = data.get(key, fallback)
        if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
            errors.append(f'"{key}" must be a whole number >= {minimum}')
            return fallback
        return value

    number_of_rounds = _int_field('numberOfRounds', defaults.number_of_rounds, 1)
    strike_limit = _int_field('strikeLimit', defaults.strike_limit, 1)

    multipliers = data.get('multipliers', list(defaults.multipliers))
    if not isinstance(multipliers, list) or not all(
            isinstance(m, int) and not isinstance(m, bool) and m >= 1 for m in multipliers):
        errors.append('"multipliers" must be a list of whole numbers >= 1')
        multipliers = list(defaults.multipliers)

    names = {}
    for key, fallback in (('gameTitle', defaults.game_title),
                          ('teamAName', defaults.team_a_name),
                          ('teamBName', defaults.team_b_name)):
        value = data.get(key, fallback)
        if not isinstance(value, str) or not value.strip():
            errors.append(f'"{key}" must be a non-empty string')
            value = fallback
        names[key] = value.strip()

    if errors:
        raise SettingsError(errors)
    return GameSettings(
        game_title=names['gameTitle'],
        team_a_name=names['teamAName'],
        team_b_name=names['teamBName'],
        number_of_rounds=number_of_rounds,
        strike_limit=strike_limit,
        multipliers=tuple(multipliers),
    )
