from . import stock_items, issues, issue_records, fuel, balance_transfer
