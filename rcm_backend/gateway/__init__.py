"""Clearinghouse submission."""

from .clearinghouse import ClearinghouseGateway, HttpClearinghouseClient, SubmissionReceipt

__all__ = ["ClearinghouseGateway", "HttpClearinghouseClient", "SubmissionReceipt"]
