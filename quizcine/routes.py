from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return 'QuizCine Server OK'


@main.route('/questions')
def list_questions():
    repository = current_app.extensions['quizcine']['questions']
    return jsonify({'questions': [q.to_dict() for q in repository.load()]})
