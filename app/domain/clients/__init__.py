"""Clients domain - Customer records"""
