"""Static symbol catalogs served by the dataset services."""

from typing import Tuple

from market_data.models import Symbol

INDICES: Tuple[Symbol, ...] = (
    Symbol(ticker="^GSPC", name="S&P 500", code="SPX"),
    Symbol(ticker="^DJI", name="Dow Jones", code="DJI"),
    Symbol(ticker="^IXIC", name="NASDAQ", code="IXIC"),
    Symbol(ticker="^RUT", name="Russell 2000", code="RUT"),
    Symbol(ticker="^VIX", name="VIX", code="VIX"),
)

# Front-month futures contracts.
COMMODITIES: Tuple[Symbol, ...] = (
    Symbol(ticker="GC=F", name="Gold", code="GC"),
    Symbol(ticker="SI=F", name="Silver", code="SI"),
    Symbol(ticker="CL=F", name="Crude Oil", code="CL"),
    Symbol(ticker="NG=F", name="Natural Gas", code="NG"),
    Symbol(ticker="HG=F", name="Copper", code="HG"),
    Symbol(ticker="PL=F", name="Platinum", code="PL"),
    Symbol(ticker="ZW=F", name="Wheat", code="ZW"),
    Symbol(ticker="ZC=F", name="Corn", code="ZC"),
)
