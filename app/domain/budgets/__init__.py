"""Budgets domain - Estimates with the paintless dent repair damage map"""
