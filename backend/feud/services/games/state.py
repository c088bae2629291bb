"""Immutable value types for a feud session.

Every transition in the engine produces new instances of these types;
nothing here is mutated in place. The ``to_dict``/``from_dict`` pairs use
the camelCase keys of the persisted state blob so a stored session can be
handed back to the engine unchanged.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

TEAM_IDS = ('A', 'B')

SESSION_SETUP = 'setup'
SESSION_PLAYING = 'playing'
SESSION_GAME_OVER = 'gameOver'

PHASE_FACEOFF = 'faceoff'
PHASE_PLAY = 'play'
PHASE_STEAL = 'steal'
PHASE_ENDED = 'ended'

TURN_DECIDE = 'decide'


def other_team(team: str) -> str:
    return 'B' if team == 'A' else 'A'


@dataclass(frozen=True)
class Answer:
    text: str
    points: int
    aliases: Tuple[str, ...] = ()

    def to_dict(self):
        return {'text': self.text, 'points': self.points, 'aliases': list(self.aliases)}

    @classmethod
    def from_dict(cls, data):
        return cls(
            text=data['text'],
            points=int(data['points']),
            aliases=tuple(data.get('aliases') or ()),
        )


@dataclass(frozen=True)
class Round:
    id: str
    question: str
    answers: Tuple[Answer, ...]

    @property
    def total_points(self) -> int:
        return sum(a.points for a in self.answers)

    def to_dict(self):
        return {
            'id': self.id,
            'question': self.question,
            'answers': [a.to_dict() for a in self.answers],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            question=data['question'],
            answers=tuple(Answer.from_dict(a) for a in data['answers']),
        )


@dataclass(frozen=True)
class QuestionPack:
    title: str
    rounds: Tuple[Round, ...]

    def to_dict(self):
        return {'title': self.title, 'rounds': [r.to_dict() for r in self.rounds]}

    @classmethod
    def from_dict(cls, data):
        return cls(
            title=data['title'],
            rounds=tuple(Round.from_dict(r) for r in data['rounds']),
        )


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    score: int = 0

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'score': self.score}

    @classmethod
    def from_dict(cls, data):
        return cls(id=data['id'], name=data['name'], score=int(data.get('score', 0)))


@dataclass(frozen=True)
class Teams:
    A: Team
    B: Team

    def get(self, team: str) -> Team:
        return self.A if team == 'A' else self.B

    def with_score(self, team: str, score: int) -> 'Teams':
        updated = replace(self.get(team), score=max(0, score))
        return replace(self, **{team: updated})

    def credit(self, team: str, points: int) -> 'Teams':
        return self.with_score(team, self.get(team).score + points)

    def to_dict(self):
        return {'A': self.A.to_dict(), 'B': self.B.to_dict()}

    @classmethod
    def from_dict(cls, data):
        return cls(A=Team.from_dict(data['A']), B=Team.from_dict(data['B']))

    @classmethod
    def named(cls, team_a_name: str, team_b_name: str) -> 'Teams':
        return cls(A=Team('A', team_a_name), B=Team('B', team_b_name))


@dataclass(frozen=True)
class FaceoffState:
    current_turn: str = 'A'
    team_a_answer_index: Optional[int] = None
    team_b_answer_index: Optional[int] = None
    team_a_strike: bool = False
    team_b_strike: bool = False
    winner: Optional[str] = None

    def answer_index(self, team: str) -> Optional[int]:
        return self.team_a_answer_index if team == 'A' else self.team_b_answer_index

    def struck(self, team: str) -> bool:
        return self.team_a_strike if team == 'A' else self.team_b_strike

    def has_acted(self, team: str) -> bool:
        return self.answer_index(team) is not None or self.struck(team)

    def to_dict(self):
        return {
            'currentTurn': self.current_turn,
            'teamAAnswerIndex': self.team_a_answer_index,
            'teamBAnswerIndex': self.team_b_answer_index,
            'teamAStrike': self.team_a_strike,
            'teamBStrike': self.team_b_strike,
            'winner': self.winner,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            current_turn=data.get('currentTurn', 'A'),
            team_a_answer_index=data.get('teamAAnswerIndex'),
            team_b_answer_index=data.get('teamBAnswerIndex'),
            team_a_strike=bool(data.get('teamAStrike', False)),
            team_b_strike=bool(data.get('teamBStrike', False)),
            winner=data.get('winner'),
        )


@dataclass(frozen=True)
class RoundState:
    round_index: int
    revealed: Tuple[bool, ...]
    strikes: int = 0
    controller: Optional[str] = None
    phase: str = PHASE_FACEOFF
    round_pot: int = 0
    multiplier: int = 1
    faceoff: FaceoffState = field(default_factory=FaceoffState)
    steal_guess: Optional[str] = None
    steal_result: Optional[str] = None

    @property
    def all_revealed(self) -> bool:
        return all(self.revealed)

    def to_dict(self):
        return {
            'roundIndex': self.round_index,
            'revealed': list(self.revealed),
            'strikes': self.strikes,
            'controller': self.controller,
            'phase': self.phase,
            'roundPot': self.round_pot,
            'multiplier': self.multiplier,
            'faceoff': self.faceoff.to_dict(),
            'stealGuess': self.steal_guess,
            'stealResult': self.steal_result,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            round_index=int(data['roundIndex']),
            revealed=tuple(bool(r) for r in data['revealed']),
            strikes=int(data.get('strikes', 0)),
            controller=data.get('controller'),
            phase=data.get('phase', PHASE_FACEOFF),
            round_pot=int(data.get('roundPot', 0)),
            multiplier=int(data.get('multiplier', 1)),
            faceoff=FaceoffState.from_dict(data.get('faceoff') or {}),
            steal_guess=data.get('stealGuess'),
            steal_result=data.get('stealResult'),
        )


@dataclass(frozen=True)
class GameSettings:
    game_title: str = 'Family Feud Night'
    team_a_name: str = 'Team A'
    team_b_name: str = 'Team B'
    number_of_rounds: int = 5
    strike_limit: int = 3
    multipliers: Tuple[int, ...] = (1, 1, 2, 2, 3)

    def multiplier_for(self, round_index: int) -> int:
        """Scheduled multiplier for a round, 1 once the schedule runs out."""
        if 0 <= round_index < len(self.multipliers):
            return self.multipliers[round_index]
        return 1

    def to_dict(self):
        return {
            'gameTitle': self.game_title,
            'teamAName': self.team_a_name,
            'teamBName': self.team_b_name,
            'numberOfRounds': self.number_of_rounds,
            'strikeLimit': self.strike_limit,
            'multipliers': list(self.multipliers),
        }

    @classmethod
    def from_dict(cls, data):
        defaults = cls()
        return cls(
            game_title=data.get('gameTitle', defaults.game_title),
            team_a_name=data.get('teamAName', defaults.team_a_name),
            team_b_name=data.get('teamBName', defaults.team_b_name),
            number_of_rounds=int(data.get('numberOfRounds', defaults.number_of_rounds)),
            strike_limit=int(data.get('strikeLimit', defaults.strike_limit)),
            multipliers=tuple(int(m) for m in data.get('multipliers', defaults.multipliers)),
        )


@dataclass(frozen=True)
class GameSnapshot:
    teams: Teams
    round_index: int
    current_round: Optional[RoundState]
    action: str
    timestamp: float

    def to_dict(self):
        return {
            'teams': self.teams.to_dict(),
            'roundIndex': self.round_index,
            'currentRound': self.current_round.to_dict() if self.current_round else None,
            'action': self.action,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data):
        current = data.get('currentRound')
        return cls(
            teams=Teams.from_dict(data['teams']),
            round_index=int(data['roundIndex']),
            current_round=RoundState.from_dict(current) if current else None,
            action=data.get('action', ''),
            timestamp=float(data.get('timestamp', 0)),
        )


@dataclass(frozen=True)
class GameSession:
    phase: str = SESSION_SETUP
    settings: GameSettings = field(default_factory=GameSettings)
    teams: Teams = field(default_factory=lambda: Teams.named('Team A', 'Team B'))
    question_pack: Optional[QuestionPack] = None
    round_index: int = 0
    current_round: Optional[RoundState] = None
    history: Tuple[GameSnapshot, ...] = ()

    @property
    def total_rounds(self) -> int:
        """Rounds actually scheduled: capped by the size of the loaded pack."""
        if not self.question_pack:
            return 0
        return min(self.settings.number_of_rounds, len(self.question_pack.rounds))

    @property
    def round(self) -> Optional[Round]:
        """The question for the current round, if one is in progress."""
        if not self.question_pack or self.current_round is None:
            return None
        return self.question_pack.rounds[self.round_index]

    def to_dict(self):
        return {
            'phase': self.phase,
            'settings': self.settings.to_dict(),
            'teams': self.teams.to_dict(),
            'questionPack': self.question_pack.to_dict() if self.question_pack else None,
            'roundIndex': self.round_index,
            'currentRound': self.current_round.to_dict() if self.current_round else None,
            'historyStack': [s.to_dict() for s in self.history],
        }

    @classmethod
    def from_dict(cls, data):
        pack = data.get('questionPack')
        current = data.get('currentRound')
        return cls(
            phase=data.get('phase', SESSION_SETUP),
            settings=GameSettings.from_dict(data.get('settings') or {}),
            teams=Teams.from_dict(data['teams']) if data.get('teams') else Teams.named('Team A', 'Team B'),
            question_pack=QuestionPack.from_dict(pack) if pack else None,
            round_index=int(data.get('roundIndex', 0)),
            current_round=RoundState.from_dict(current) if current else None,
            history=tuple(GameSnapshot.from_dict(s) for s in data.get('historyStack') or ()),
        )
