from feud import db
from feud.services.games.state import GameSession
from feud.services.games.engine import new_session
import json
import string
import random
import time

def generate_game_code(length=4):
    """Generate a unique, short game code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not FeudGame.query.filter_by(game_code=code).first():
            return code

class FeudGame(db.Model):
    """Durable copy of one host's session, stored as the serialized state blob."""
    __tablename__ = 'feud_game'
    id = db.Column(db.Integer, primary_key=True)
    game_code = db.Column(db.String(4), unique=True, index=True)
    phase = db.Column(db.String(16), default='setup')  # setup, playing, gameOver
    state = db.Column(db.Text, nullable=True)  # JSON-encoded GameSession
    updated_at = db.Column(db.Float, nullable=True)

    def __init__(self, **kwargs):
        super(FeudGame, self).__init__(**kwargs)
        if not self.game_code:
            self.game_code = generate_game_code()
        if self.state is None:
            self.store_session(new_session())

    def load_session(self) -> GameSession:
        try:
            data = json.loads(self.state) if self.state else None
        except ValueError:
            data = None
        if not data:
            return new_session()
        return GameSession.from_dict(data)

    def store_session(self, session: GameSession) -> None:
        self.state = json.dumps(session.to_dict())
        self.phase = session.phase
        self.updated_at = time.time()

    def to_dict(self):
        return {
            'id': self.id,
            'game_code': self.game_code,
            'phase': self.phase,
            'updated_at': self.updated_at,
        }
