from marshmallow import Schema, fields
from marshmallow.validate import Range

from .models import ALLOWED_BETS, MIN_MATCH_COUNT, SCATTER_PAY_FACTOR, SCATTER_TRIGGER_COUNT, FREE_SPINS_PER_TRIGGER
from .utils.payline_evaluator import PAYLINES


# --- Request Schemas ---
# Stakes are only type-checked here; the engine rejects off-menu stakes with
# InvalidBetAmountException so the error code matches the game rule.
class SpinRequestSchema(Schema):
    bet_amount = fields.Int(required=True, strict=True)


class AutoSpinRequestSchema(Schema):
    count = fields.Int(required=True, strict=True, validate=Range(min=1, error="Autospin count must be at least 1."))
    bet_amount = fields.Int(strict=True, load_default=None, allow_none=True)


# --- Symbol / Paytable Schemas ---
class SymbolSchema(Schema):
    id = fields.Str()
    name = fields.Str()
    icon = fields.Str()
    value = fields.Int()
    weight = fields.Float()
    category = fields.Function(lambda symbol: symbol.category.value)


class PaytableSchema(Schema):
    symbols = fields.List(fields.Nested(SymbolSchema))
    paylines = fields.Raw()
    allowed_bets = fields.List(fields.Int())
    rules = fields.Dict()


def build_paytable(symbol_table):
    return PaytableSchema().dump({
        'symbols': list(symbol_table),
        'paylines': [[list(coord) for coord in line] for line in PAYLINES],
        'allowed_bets': list(ALLOWED_BETS),
        'rules': {
            'min_match_count': MIN_MATCH_COUNT,
            'line_win_formula': 'value * bet * count / 100',
            'scatter_trigger_count': SCATTER_TRIGGER_COUNT,
            'free_spins_per_trigger': FREE_SPINS_PER_TRIGGER,
            'scatter_win_formula': f'bet * scatter_count * {SCATTER_PAY_FACTOR}',
        },
    })


# --- WinLine Schema (For Spin Response) ---
class WinLineSchema(Schema):
    line_id = fields.Int(attribute='payline_index')
    symbol_id = fields.Str()
    count = fields.Int()
    win_amount = fields.Float(attribute='amount')


class SpinOutcomeSchema(Schema):
    spin_number = fields.Int()
    grid = fields.Method('get_grid')
    bet = fields.Int()
    was_free_spin = fields.Bool()
    winning_lines = fields.List(fields.Int())
    line_wins = fields.List(fields.Nested(WinLineSchema))
    scatter_count = fields.Int()
    scatter_win = fields.Float()
    bonus_triggered = fields.Bool()
    multiplier = fields.Int()
    base_win = fields.Float()
    win_amount = fields.Float()
    jackpot_won = fields.Bool()
    jackpot_amount = fields.Float()
    total_credited = fields.Float()
    balance_after = fields.Float()
    free_spins_remaining = fields.Int()
    bonus_active = fields.Bool()

    def get_grid(self, outcome):
        return outcome.grid_ids()


# --- State Schemas ---
class WalletSchema(Schema):
    balance = fields.Float()
    bet = fields.Int()
    last_win = fields.Float()
    total_wins = fields.Float()


class BonusStateSchema(Schema):
    active = fields.Bool()
    free_spins_remaining = fields.Int()
    multiplier = fields.Int()


class JackpotStateSchema(Schema):
    pool = fields.Float()


class AutoSpinStateSchema(Schema):
    requested = fields.Int()
    remaining = fields.Int()
    active = fields.Bool()
    bet = fields.Int(allow_none=True)
    spins_completed = fields.Int()
    stop_reason = fields.Str(allow_none=True)


class GameStateSchema(Schema):
    wallet = fields.Nested(WalletSchema)
    bonus = fields.Nested(BonusStateSchema)
    jackpot = fields.Nested(JackpotStateSchema)
    autospin = fields.Nested(AutoSpinStateSchema)
    last_outcome = fields.Nested(SpinOutcomeSchema, allow_none=True)
    is_spinning = fields.Bool()


def build_game_state(engine, scheduler=None):
    snapshot = engine.snapshot()
    return GameStateSchema().dump({
        'wallet': snapshot.wallet,
        'bonus': snapshot.bonus,
        'jackpot': snapshot.jackpot,
        'autospin': scheduler.snapshot() if scheduler is not None else None,
        'last_outcome': snapshot.last_outcome,
        'is_spinning': engine.is_spinning,
    })
