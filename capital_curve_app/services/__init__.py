from capital_curve_app.services.ledger import CurveLedger, Party
from capital_curve_app.services.schedule import compute_curve_table

__all__ = ["CurveLedger", "Party", "compute_curve_table"]
