"""Services domain - Repair work orders"""
