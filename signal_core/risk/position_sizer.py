"""
Position Sizing Calculator

Fixed-fractional sizing for leveraged contracts:

    risk_amount = balance x risk_pct / 100
    contracts   = risk_amount / |entry - stop|
    margin      = contracts x entry / leverage

with a simplified liquidation estimate 90% of the way from entry to the
1/leverage distance, on the stop side. Invalid configuration raises;
a zero stop distance returns an all-zero size.
"""

from signal_core.shared.models.risk import PositionSize

LIQUIDATION_BUFFER = 0.9
PROFIT_MULTIPLE = 2.0


class PositionSizer:
    """
    Position sizing calculator for a single account.

    Usage:
        sizer = PositionSizer(account_balance=10000)
        size = sizer.calculate(risk_pct=1.0, entry_price=100, stop_price=99, leverage=10)
    """

    def __init__(self, account_balance: float, max_risk_pct: float = 10.0):
        """
        Args:
            account_balance: Account equity in quote currency
            max_risk_pct: Upper bound on risk per trade, percent

        Raises:
            ValueError: If any parameter is invalid
        """
        if account_balance <= 0:
            raise ValueError(f"Account balance must be positive, got {account_balance}")
        if not 0 < max_risk_pct <= 100:
            raise ValueError(f"Max risk % must be 0-100, got {max_risk_pct}")

        self.account_balance = account_balance
        self.max_risk_pct = max_risk_pct

    def calculate(
        self,
        risk_pct: float,
        entry_price: float,
        stop_price: float,
        leverage: float = 1.0
    ) -> PositionSize:
        """
        Size a position so a stop-out loses `risk_pct` of the account.

        Returns:
            PositionSize with contracts rounded to 3 decimals and money
            values to 2

        Raises:
            ValueError: If risk_pct, prices or leverage are out of range
        """
        if not 0 < risk_pct <= self.max_risk_pct:
            raise ValueError(f"Risk % must be in (0, {self.max_risk_pct}], got {risk_pct}")
        if entry_price <= 0 or stop_price <= 0:
            raise ValueError(f"Prices must be positive, got entry={entry_price} stop={stop_price}")
        if leverage < 1:
            raise ValueError(f"Leverage must be >= 1, got {leverage}")

        risk_amount = self.account_balance * risk_pct / 100
        stop_distance = abs(entry_price - stop_price)
        if stop_distance == 0:
            return PositionSize(contracts=0.0, margin_required=0.0, liquidation_price=0.0, max_loss=0.0, max_profit=0.0)

        contracts = risk_amount / stop_distance
        margin = contracts * entry_price / leverage

        liquidation_distance = entry_price / leverage * LIQUIDATION_BUFFER
        if entry_price > stop_price:
            liquidation_price = entry_price - liquidation_distance
        else:
            liquidation_price = entry_price + liquidation_distance

        return PositionSize(
            contracts=round(contracts, 3),
            margin_required=round(margin, 2),
            liquidation_price=round(liquidation_price, 2),
            max_loss=round(risk_amount, 2),
            max_profit=round(risk_amount * PROFIT_MULTIPLE, 2),
        )
