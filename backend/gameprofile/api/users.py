from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from gameprofile import db
from gameprofile.auth import client_required, token_required
from gameprofile.errors import StorageFault, ValidationError
from gameprofile.models import PROFILE_ID_MAX_LENGTH
from gameprofile.services.friends import add_friend, remove_friend
from gameprofile.services.profiles import fetch_friends, fetch_public
from gameprofile.services.progress import merge_batch, parse_progress


users = Blueprint('users', __name__)


def _valid_profile_id(value) -> bool:
    return isinstance(value, str) and 0 < len(value) <= PROFILE_ID_MAX_LENGTH


def _query_user_ids():
    ids = request.args.getlist('user_id')
    if not ids or not all(_valid_profile_id(i) for i in ids):
        raise ValidationError('user_id is required')
    return ids


def _body_user_id():
    data = request.get_json(silent=True)
    try:
        target = data['user_id']
    except (TypeError, KeyError) as exc:
        raise ValidationError('user_id is required') from exc
    if not _valid_profile_id(target):
        raise ValidationError('user_id must be a non-empty string')
    return target


@users.route('/info', methods=['GET'])
@client_required
def get_info():
    ids = _query_user_ids()
    return jsonify(fetch_public(db.session, ids))


@users.route('/friends', methods=['GET'])
@client_required
def get_friends():
    ids = _query_user_ids()
    return jsonify(fetch_friends(db.session, ids))


@users.route('/addfriend', methods=['POST'])
@token_required
def post_add_friend():
    target = _body_user_id()
    subject = current_user.subject
    add_friend(db.session, subject, target)
    current_app.logger.info(f"[addfriend] subject={subject} target={target}")
    return '', 201


@users.route('/removefriend', methods=['POST'])
@token_required
def post_remove_friend():
    target = _body_user_id()
    subject = current_user.subject
    remove_friend(db.session, subject, target)
    current_app.logger.info(f"[removefriend] subject={subject} target={target}")
    return '', 200


@users.route('/gamesave/update', methods=['POST'])
@token_required
def post_gamesave_update():
    try:
        deltas = parse_progress(request.get_json(silent=True))
    except (TypeError, ValueError, KeyError, AttributeError) as exc:
        raise ValidationError('Malformed progress') from exc
    try:
        applied = merge_batch(db.session, deltas)
    except StorageFault as exc:
        current_app.logger.exception(f"[gamesave] merge failed: {exc.message}")
        return jsonify({'saved': False, 'error': exc.message}), 500
    current_app.logger.info(f"[gamesave] subject={current_user.subject} entries={applied}")
    return jsonify({'saved': True})
