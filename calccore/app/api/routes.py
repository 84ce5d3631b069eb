"""HTTP routes for the Flask API."""

from http import HTTPStatus
from typing import Any, Dict, Optional, Tuple

from flask import Blueprint, Response, current_app, jsonify, request
from pydantic import ValidationError

from calccore.core.export import schedule_to_csv
from calccore.core.rates import RateConverter
from calccore.core.schedule import compute_schedule
from calccore.domain.calculators import (
    CalculationError,
    CompoundInput,
    DepositInput,
    InflationInput,
    LoanInput,
    MortgageInput,
    PensionInput,
    compound_projection,
    deposit_schedule,
    inflation_projection,
    loan_schedule,
    mortgage_schedule,
    pension_projection,
)
from calccore.schemas.ping import PingResponse
from calccore.schemas.rates import RateUnavailable
from calccore.schemas.schedule import ScheduleError, ScheduleRequest, ScheduleResult

api_bp = Blueprint("api", __name__)

PERIOD_MONEY_FIELDS = ("opening_balance", "interest", "principal_movement", "fee", "closing_balance", "payment")
TOTAL_MONEY_FIELDS = ("total_interest", "total_principal_moved", "total_fees", "total_paid_or_accrued", "final_balance")


def _converter() -> RateConverter:
    return current_app.extensions["rate_converter"]


@api_bp.errorhandler(ValidationError)
def _handle_validation_error(exc: ValidationError):
    """Convert Pydantic validation errors into JSON responses."""
    return jsonify({"detail": exc.errors(include_url=False, include_context=False)}), HTTPStatus.UNPROCESSABLE_ENTITY


@api_bp.errorhandler(CalculationError)
def _handle_calculation_error(exc: CalculationError):
    return jsonify(ScheduleError(error=exc.errors).model_dump()), HTTPStatus.BAD_REQUEST


@api_bp.get("/ping")
def ping() -> Any:
    """Health-check endpoint."""
    response = PingResponse(message="pong", home_currency=_converter().home)
    return jsonify(response.model_dump())


# -----------------------------
# Schedule engine
# -----------------------------


def _schedule_from_request() -> Tuple[Optional[ScheduleResult], Optional[Tuple[Any, int]]]:
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = ScheduleRequest.model_validate(raw_payload)
    outcome = compute_schedule(payload)
    if not outcome.ok:
        return None, (jsonify(ScheduleError(error=outcome.errors).model_dump()), HTTPStatus.BAD_REQUEST)
    return outcome.result, None


def _display_currency(code: Optional[str]) -> Tuple[str, Optional[str]]:
    """Pick the currency amounts are shown in, reverting to home when no rate is ready."""
    converter = _converter()
    if not code:
        return converter.home, None
    fallback = converter.convert_or_home(0.0, code)
    return fallback.code, fallback.notice


@api_bp.post("/calc/schedule")
def schedule() -> Any:
    """Period ledger for one of the annuity/linear/accrual policies."""
    result, error = _schedule_from_request()
    if error:
        return error

    currency, notice = _display_currency(request.args.get("currency"))
    body = result.model_dump(mode="json")

    converter = _converter()
    if currency != converter.home:
        def money(value: float) -> float:
            return converter.convert(value, converter.home, currency).amount

        for period in body["periods"]:
            for key in PERIOD_MONEY_FIELDS:
                period[key] = money(period[key])
        for key in TOTAL_MONEY_FIELDS:
            body[key] = money(body[key])

    return jsonify({"currency": currency, "notice": notice, "schedule": body})


@api_bp.post("/calc/schedule/export")
def schedule_export() -> Any:
    """CSV download of the ledger, optionally in a display currency."""
    result, error = _schedule_from_request()
    if error:
        return error

    currency, notice = _display_currency(request.args.get("currency"))
    converter = _converter()
    convert = None
    if currency != converter.home:
        def convert(value: float) -> float:
            return converter.convert(value, converter.home, currency).amount

    response = Response(schedule_to_csv(result, convert=convert), mimetype="text/csv")
    response.headers["Content-Disposition"] = "attachment; filename=schedule.csv"
    response.headers["X-Currency"] = currency
    if notice:
        response.headers["X-Currency-Notice"] = notice
    return response


# -----------------------------
# Calculators
# -----------------------------


@api_bp.post("/calc/loan")
def loan() -> Any:
    payload = LoanInput.model_validate(request.get_json(force=True, silent=False))
    return jsonify(loan_schedule(payload).model_dump(mode="json"))


@api_bp.post("/calc/mortgage")
def mortgage() -> Any:
    payload = MortgageInput.model_validate(request.get_json(force=True, silent=False))
    return jsonify(mortgage_schedule(payload).model_dump(mode="json"))


@api_bp.post("/calc/deposit")
def deposit() -> Any:
    payload = DepositInput.model_validate(request.get_json(force=True, silent=False))
    return jsonify(deposit_schedule(payload).model_dump(mode="json"))


@api_bp.post("/calc/compound")
def compound() -> Any:
    payload = CompoundInput.model_validate(request.get_json(force=True, silent=False))
    return jsonify(compound_projection(payload).model_dump(mode="json"))


@api_bp.post("/calc/pension")
def pension() -> Any:
    payload = PensionInput.model_validate(request.get_json(force=True, silent=False))
    return jsonify(pension_projection(payload).model_dump(mode="json"))


@api_bp.post("/calc/inflation")
def inflation() -> Any:
    payload = InflationInput.model_validate(request.get_json(force=True, silent=False))
    return jsonify(inflation_projection(payload).model_dump(mode="json"))


# -----------------------------
# Exchange rates
# -----------------------------


@api_bp.get("/rates")
def rates() -> Any:
    converter = _converter()
    entries = [entry.model_dump(mode="json") for entry in converter.status()]
    return jsonify({"home": converter.home, "rates": entries})


@api_bp.post("/rates/refresh")
def rates_refresh() -> Any:
    force = request.args.get("force", "").lower() in {"1", "true", "yes"}
    report = _converter().refresh(force=force)
    return jsonify(report.model_dump(mode="json"))


@api_bp.get("/rates/convert")
def rates_convert() -> Any:
    converter = _converter()
    try:
        amount = float(request.args.get("amount", ""))
    except ValueError:
        return jsonify({"error": ["amount must be a number"]}), HTTPStatus.BAD_REQUEST

    from_code = request.args.get("from", converter.home)
    to_code = request.args.get("to", converter.home)
    outcome = converter.convert(amount, from_code, to_code)
    if isinstance(outcome, RateUnavailable):
        return jsonify(outcome.model_dump())
    return jsonify({"available": True, **outcome.model_dump()})
