"""
Audit Event Logging
Structured GAME_EVENT / FINANCIAL_EVENT / SECURITY_EVENT records for every
spin, balance movement and rejected request.
"""

import logging
from datetime import datetime, timezone
from flask import current_app, g, request
import json

_fallback_logger = logging.getLogger('tropicana_be.audit')


def _get_logger():
    try:
        return current_app.logger
    except RuntimeError:
        # Autospin worker thread, CLI simulation
        return _fallback_logger


def _request_context():
    try:
        return g.get('request_id', 'N/A'), request.remote_addr
    except RuntimeError:
        return 'N/A', None


def _dumps(event_data):
    return json.dumps(event_data, default=str)


class AuditLogger:
    """Centralized audit event logging"""

    @staticmethod
    def log_game_event(event_type: str, bet_amount: int = None, win_amount=None,
                       spin_number: int = None, details: dict = None):
        """Log game-related events (spins, bonus transitions, autospin runs)"""
        request_id, ip_address = _request_context()

        event_data = {
            'event_type': 'game',
            'sub_type': event_type,
            'game_type': 'tropicana_slot',
            'bet_amount': bet_amount,
            'win_amount': win_amount,
            'spin_number': spin_number,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'details': details or {}
        }

        _get_logger().info(f"GAME_EVENT: {_dumps(event_data)}")

    @staticmethod
    def log_financial_event(event_type: str, amount=None, balance_before=None,
                            balance_after=None, details: dict = None):
        """Log wallet movements"""
        request_id, ip_address = _request_context()

        event_data = {
            'event_type': 'financial',
            'sub_type': event_type,
            'amount': amount,
            'balance_before': balance_before,
            'balance_after': balance_after,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'details': details or {}
        }

        _get_logger().info(f"FINANCIAL_EVENT: {_dumps(event_data)}")

    @staticmethod
    def log_security_event(event_type: str, severity: str = 'medium', details: dict = None):
        """Log rejected or suspicious requests"""
        request_id, ip_address = _request_context()

        event_data = {
            'event_type': 'security',
            'sub_type': event_type,
            'severity': severity,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'details': details or {}
        }

        level_map = {
            'low': logging.INFO,
            'medium': logging.WARNING,
            'high': logging.ERROR,
            'critical': logging.CRITICAL
        }

        level = level_map.get(severity, logging.WARNING)
        _get_logger().log(level, f"SECURITY_EVENT: {_dumps(event_data)}")


def audit_spin_outcome(event, outcome=None):
    """
    Engine listener: writes one GAME_EVENT per settled spin, plus a
    FINANCIAL_EVENT whenever the balance moved.
    """
    if event == 'reset':
        AuditLogger.log_financial_event('wallet_reset', details={'reason': 'player_reset'})
        return
    if outcome is None:
        return

    AuditLogger.log_game_event(
        'spin',
        bet_amount=outcome.bet,
        win_amount=outcome.win_amount,
        spin_number=outcome.spin_number,
        details={
            'free_spin': outcome.was_free_spin,
            'winning_lines': outcome.winning_lines,
            'scatter_count': outcome.scatter_count,
            'bonus_triggered': outcome.bonus_triggered,
            'multiplier': outcome.multiplier,
            'jackpot_won': outcome.jackpot_won,
        }
    )

    debit = 0 if outcome.was_free_spin else outcome.bet
    credit = outcome.total_credited
    if debit or credit:
        AuditLogger.log_financial_event(
            'spin_settlement',
            amount=credit - debit,
            balance_before=outcome.balance_after - credit + debit,
            balance_after=outcome.balance_after,
            details={'debit': debit, 'credit': credit, 'jackpot_amount': outcome.jackpot_amount}
        )
