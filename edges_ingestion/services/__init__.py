"""Ingestion services: conversion, transactional write, file import."""

from edges_ingestion.services.dataset_converter import DatasetConverter
from edges_ingestion.services.dataset_writer import DatasetWriter
from edges_ingestion.services.file_import_service import FileImportService, ImportOutcome

__all__ = ["DatasetConverter", "DatasetWriter", "FileImportService", "ImportOutcome"]
