from escapequiz import db, bcrypt
from flask import current_app
from flask_login import UserMixin


class GameStatus:
    WAITING = 'WAITING'
    STARTED = 'STARTED'
    FINISHED = 'FINISHED'

    ALL = (WAITING, STARTED, FINISHED)


def current_app_id():
    return current_app.config.get('APP_ID', 'default-app-id')


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.username in (current_app.config.get('ADMIN_USERNAMES') or [])

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'is_admin': self.is_admin,
        }


class GameConfig(db.Model):
    __tablename__ = 'game_config'
    app_id = db.Column(db.String(128), primary_key=True)
    status = db.Column(db.String(16), nullable=False, default=GameStatus.WAITING)
    total_questions = db.Column(db.Integer, nullable=False, default=0)
    first_question_id = db.Column(db.String(128), nullable=True)

    def to_dict(self):
        return {
            'status': self.status,
            'total_questions': self.total_questions or 0,
            'first_question_id': self.first_question_id,
        }


class Question(db.Model):
    """Public question content. The answer lives in AnswerKey."""
    __tablename__ = 'question'
    app_id = db.Column(db.String(128), primary_key=True)
    id = db.Column(db.String(128), primary_key=True)
    title = db.Column(db.String(256), nullable=True)
    prompt = db.Column(db.Text, nullable=True)  # rich text (HTML)
    next_question_id = db.Column(db.String(128), nullable=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    @property
    def is_terminal(self):
        return not self.next_question_id

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'prompt': self.prompt,
            'next_question_id': self.next_question_id,
        }


class AnswerKey(db.Model):
    """Access-restricted correct answer; only the validation service reads it."""
    __tablename__ = 'answer_key'
    app_id = db.Column(db.String(128), primary_key=True)
    question_id = db.Column(db.String(128), primary_key=True)
    correct_answer = db.Column(db.Text, nullable=False)


class Team(db.Model):
    __tablename__ = 'team'
    # Team ids must never be reused: audit rows and team:<id> rooms key on them
    __table_args__ = (
        db.UniqueConstraint('app_id', 'user_id', name='uq_team_app_user'),
        {'sqlite_autoincrement': True},
    )
    id = db.Column(db.Integer, primary_key=True)
    app_id = db.Column(db.String(128), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    name = db.Column(db.String(64), nullable=False)
    current_question_id = db.Column(db.String(128), nullable=True)
    start_time = db.Column(db.Float, nullable=True)
    end_time = db.Column(db.Float, nullable=True)
    score = db.Column(db.Integer, nullable=False, default=0)
    parts = db.relationship('SolvedPart', back_populates='team', cascade='all, delete-orphan',
                            order_by='SolvedPart.solved_at')

    @property
    def parts_solved(self):
        return {p.question_id: p.solved_at for p in self.parts}

    @property
    def is_finished(self):
        return self.end_time is not None

    def has_solved(self, question_id):
        return any(p.question_id == question_id for p in self.parts)

    def to_public_dict(self):
        return {
            'team_id': self.id,
            'name': self.name,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'parts_solved': self.parts_solved,
            'score': self.score or 0,
            'finished': self.is_finished,
        }

    def to_private_dict(self):
        data = self.to_public_dict()
        data['current_question_id'] = self.current_question_id
        data['user_id'] = self.user_id
        return data


class SolvedPart(db.Model):
    __tablename__ = 'solved_part'
    __table_args__ = (db.UniqueConstraint('team_id', 'question_id', name='uq_solved_part_team_question'),)
    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('team.id', ondelete='CASCADE'), nullable=False)
    question_id = db.Column(db.String(128), nullable=False)
    solved_at = db.Column(db.Float, nullable=False)
    team = db.relationship('Team', back_populates='parts')


class AnswerAttempt(db.Model):
    """Append-only audit log of validation attempts."""
    __tablename__ = 'answer_attempt'
    id = db.Column(db.Integer, primary_key=True)
    app_id = db.Column(db.String(128), nullable=False, index=True)
    team_id = db.Column(db.Integer, nullable=True, index=True)
    question_id = db.Column(db.String(128), nullable=False)
    submitted_answer = db.Column(db.Text, nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    timestamp = db.Column(db.Float, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'team_id': self.team_id,
            'question_id': self.question_id,
            'submitted_answer': self.submitted_answer,
            'is_correct': self.is_correct,
            'timestamp': self.timestamp,
        }
