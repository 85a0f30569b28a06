from flask import Blueprint, request, jsonify, current_app, g

from ..exceptions import ValidationException
from ..extensions import limiter
from ..schemas import (
    SpinRequestSchema, AutoSpinRequestSchema, SpinOutcomeSchema, AutoSpinStateSchema,
    build_game_state, build_paytable
)
from ..utils.audit_logger import AuditLogger

slots_bp = Blueprint('slots', __name__, url_prefix='/api/slots')


def _spin_rate_limit():
    return current_app.config.get('SPIN_RATE_LIMIT', '120 per minute')


def _get_json_body(required=True):
    """Returns the parsed JSON body, or {} when it is optional and absent."""
    data = request.get_json(silent=True)
    if data is None:
        if not required and not request.get_data():
            return {}
        AuditLogger.log_security_event('MALFORMED_REQUEST', 'low', {'endpoint': request.endpoint})
        raise ValidationException("Invalid request format: Not valid JSON.")
    if not isinstance(data, dict):
        raise ValidationException("Invalid request format: Expected a JSON object.")
    return data


@slots_bp.route('/state', methods=['GET'])
def get_state():
    state = build_game_state(current_app.slot_engine, current_app.autospin_scheduler)
    return jsonify({'status': True, 'state': state}), 200


@slots_bp.route('/paytable', methods=['GET'])
def get_paytable():
    return jsonify({'status': True, 'paytable': build_paytable(current_app.slot_engine.symbol_table)}), 200


@slots_bp.route('/spin', methods=['POST'])
@limiter.limit(_spin_rate_limit)
def spin():
    data = _get_json_body()
    # Marshmallow errors are handled by the app-level handler
    validated = SpinRequestSchema().load(data)

    engine = current_app.slot_engine
    outcome = engine.request_spin(validated['bet_amount'])

    current_app.logger.info(
        f"Request ID: {g.get('request_id', 'N/A')} - Spin #{outcome.spin_number} settled: "
        f"bet={outcome.bet} win={outcome.win_amount} jackpot={outcome.jackpot_amount}"
    )
    return jsonify({
        'status': True,
        'outcome': SpinOutcomeSchema().dump(outcome),
        'state': build_game_state(engine, current_app.autospin_scheduler)
    }), 200


@slots_bp.route('/autospin', methods=['POST'])
@limiter.limit(_spin_rate_limit)
def start_autospin():
    data = _get_json_body()
    validated = AutoSpinRequestSchema().load(data)

    scheduler = current_app.autospin_scheduler
    autospin_state = scheduler.start(validated['count'], validated['bet_amount'])
    AuditLogger.log_game_event(
        'autospin_started',
        bet_amount=validated['bet_amount'],
        details={'count': validated['count']}
    )
    return jsonify({
        'status': True,
        'autospin': AutoSpinStateSchema().dump(autospin_state),
        'state': build_game_state(current_app.slot_engine, scheduler)
    }), 200


@slots_bp.route('/autospin/stop', methods=['POST'])
def stop_autospin():
    scheduler = current_app.autospin_scheduler
    was_running = scheduler.running
    scheduler.stop()
    if was_running:
        AuditLogger.log_game_event('autospin_stop_requested')
    return jsonify({
        'status': True,
        'stopping': was_running,
        'autospin': AutoSpinStateSchema().dump(scheduler.snapshot())
    }), 200


@slots_bp.route('/reset', methods=['POST'])
def reset_game():
    scheduler = current_app.autospin_scheduler
    scheduler.reset()
    engine = current_app.slot_engine
    current_app.logger.info(f"Request ID: {g.get('request_id', 'N/A')} - Game state reset by player")
    return jsonify({'status': True, 'state': build_game_state(engine, scheduler)}), 200
