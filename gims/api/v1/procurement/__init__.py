from . import request_records, requests, receives, receive_records, tender_receives, borrow_receives, rrp
