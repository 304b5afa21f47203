"""
CandlePulse – Pattern Scorer (Engulfing + Star Patterns)
=========================================================
Puntúa patrones de velas en cada posición de la serie y publica los
puntajes totales que superan el umbral.

═══════════════════════════════════════════════════════════════
                 PATRONES (cada uno en [0, 25])
═══════════════════════════════════════════════════════════════

1. ENGULFING (2 velas: prev = data[i-1], cur = data[i]):
   - Bullish: prev bajista, cur alcista,
              cur.open ≤ prev.close  y  cur.close ≥ prev.open
   - Bearish: prev alcista, cur bajista,
              cur.open ≥ prev.close  y  cur.close ≤ prev.open
   - ratio = cur_body / max(prev_body, 0.0001)
     score = min(15 + min(ratio − 1, 1) × 10, 25)

2. MORNING STAR (3 velas: first, middle, last):
   - first bajista y fuerte:  body > 0.6 × range
   - middle pequeña:          body < 0.3 × first_body
                              middle.high < first.close   (gap abajo)
   - last alcista y fuerte:   body > 0.6 × range
                              last.low > middle.high      (gap arriba)
   - last.close > punto medio del cuerpo de first
   - score = min(15 + min(last_body / first_body, 1.5) × 10, 25)

3. EVENING STAR: espejo del morning star
   - middle.low > first.close,  last.high < middle.low,
     last.close < punto medio del cuerpo de first.

═══════════════════════════════════════════════════════════════
                 PUNTAJE TOTAL Y PUBLICACIÓN
═══════════════════════════════════════════════════════════════

  BUY  total = bullish_engulfing + morning_star
  SELL total = bearish_engulfing + evening_star

  - Solo se puntúan posiciones i ≥ window (20 por defecto).
  - Se publica una entrada solo si total ≥ publish_threshold (70).
  - Los mapas BUY y SELL son independientes: la misma posición puede
    aparecer en ambos.

NOTA: con dos patrones de 25 como máximo, el total no supera 50, así
que con los umbrales por defecto nunca se publica nada. Los umbrales
son configurables (Settings.score_publish_threshold).
"""

from __future__ import annotations

from typing import Dict, Sequence, Tuple

from candlepulse.core.logging import get_logger
from candlepulse.domain.entities.candle import Candlestick
from candlepulse.domain.entities.signal_scoring import SignalScoring

logger = get_logger("pattern_scorer")

CandleView = Sequence[Tuple[int, Candlestick]]
ScoreMap = Dict[int, SignalScoring]

# ─── Constantes de los patrones ────────────────────────────────────
BASE_SCORE = 15.0
MAX_PATTERN_SCORE = 25.0
MIN_PREV_BODY = 0.0001
STRONG_BODY_RATIO = 0.6
SMALL_BODY_RATIO = 0.3
MAX_STAR_RATIO = 1.5

DEFAULT_WINDOW = 20
DEFAULT_PUBLISH_THRESHOLD = 70.0


# ════════════════════════════════════════════════════════════════════
#  ENGULFING
# ════════════════════════════════════════════════════════════════════

def _engulfing_score(prev: Candlestick, cur: Candlestick) -> float:
    ratio = cur.body / max(prev.body, MIN_PREV_BODY)
    return min(BASE_SCORE + min(ratio - 1.0, 1.0) * 10.0, MAX_PATTERN_SCORE)


def bullish_engulfing(data: CandleView, i: int) -> float:
    if i < 1:
        return 0.0
    prev = data[i - 1][1]
    cur = data[i][1]
    if not (prev.is_bearish and cur.is_bullish):
        return 0.0
    if cur.open <= prev.close and cur.close >= prev.open:
        return _engulfing_score(prev, cur)
    return 0.0


def bearish_engulfing(data: CandleView, i: int) -> float:
    if i < 1:
        return 0.0
    prev = data[i - 1][1]
    cur = data[i][1]
    if not (prev.is_bullish and cur.is_bearish):
        return 0.0
    if cur.open >= prev.close and cur.close <= prev.open:
        return _engulfing_score(prev, cur)
    return 0.0


# ════════════════════════════════════════════════════════════════════
#  STARS
# ════════════════════════════════════════════════════════════════════

def _is_strong(candle: Candlestick) -> bool:
    return candle.body > STRONG_BODY_RATIO * candle.range


def _star_score(first: Candlestick, last: Candlestick) -> float:
    return min(
        BASE_SCORE + min(last.body / first.body, MAX_STAR_RATIO) * 10.0,
        MAX_PATTERN_SCORE,
    )


def morning_star(data: CandleView, i: int) -> float:
    """Giro alcista de 3 velas con gaps a ambos lados de la vela central."""
    if i < 2:
        return 0.0
    first = data[i - 2][1]
    middle = data[i - 1][1]
    last = data[i][1]

    if not (first.is_bearish and _is_strong(first)):
        return 0.0
    if not (middle.body < SMALL_BODY_RATIO * first.body and middle.high < first.close):
        return 0.0
    if not (last.is_bullish and _is_strong(last) and last.low > middle.high):
        return 0.0
    if last.close <= (first.open + first.close) / 2.0:
        return 0.0
    return _star_score(first, last)


def evening_star(data: CandleView, i: int) -> float:
    """Giro bajista de 3 velas, espejo del morning star."""
    if i < 2:
        return 0.0
    first = data[i - 2][1]
    middle = data[i - 1][1]
    last = data[i][1]

    if not (first.is_bullish and _is_strong(first)):
        return 0.0
    if not (middle.body < SMALL_BODY_RATIO * first.body and middle.low > first.close):
        return 0.0
    if not (last.is_bearish and _is_strong(last) and last.high < middle.low):
        return 0.0
    if last.close >= (first.open + first.close) / 2.0:
        return 0.0
    return _star_score(first, last)


# ════════════════════════════════════════════════════════════════════
#  SCORING
# ════════════════════════════════════════════════════════════════════

def score_position(data: CandleView, i: int) -> Tuple[SignalScoring, SignalScoring]:
    """Puntajes (BUY, SELL) en la posición i, sin filtrar por umbral."""
    bull = bullish_engulfing(data, i)
    morning = morning_star(data, i)
    bear = bearish_engulfing(data, i)
    evening = evening_star(data, i)

    buy = SignalScoring(
        bullish_engulfing=bull,
        morning_star=morning,
        total_score=bull + morning,
    )
    sell = SignalScoring(
        bearish_engulfing=bear,
        evening_star=evening,
        total_score=bear + evening,
    )
    return buy, sell


def score_signals(
    data: CandleView,
    start: int = 0,
    window: int = DEFAULT_WINDOW,
    publish_threshold: float = DEFAULT_PUBLISH_THRESHOLD,
) -> Tuple[ScoreMap, ScoreMap]:
    """
    Puntuar posiciones [max(start, window), len) → (buy_map, sell_map).

    Solo se incluyen entradas con total ≥ publish_threshold.
    """
    buy_map: ScoreMap = {}
    sell_map: ScoreMap = {}

    for i in range(max(start, window), len(data)):
        timestamp = data[i][0]
        buy, sell = score_position(data, i)
        if buy.total_score >= publish_threshold:
            buy_map[timestamp] = buy
        if sell.total_score >= publish_threshold:
            sell_map[timestamp] = sell

    if buy_map or sell_map:
        logger.debug(
            "Señales puntuadas: %d BUY, %d SELL (desde posición %d)",
            len(buy_map), len(sell_map), max(start, window),
        )
    return buy_map, sell_map
