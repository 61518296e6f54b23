"""
Utility modules for loading and filtering survey data.
"""

from survey_analytics.utils.api_fetcher import APIFetcher, api_fetcher
from survey_analytics.utils.data_transformers import DataTransformer, data_transformer
