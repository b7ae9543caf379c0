from .context import QuerySpec, TaxQuery
from .environment import Environment, Hooks, ObjectCache, get_environment
from .normalize import (
    contains_only_integers, normalize_arguments,
    parse_taxonomy_arguments, process_csv_arguments_to_arrays,
)
from .provider import QueryProvider, MongoQueryProvider, build_filter
from .base import BaseCommand
from .loop import BulkTask, PageReport, RunStats, iterate
from .batch_log import MongoBatchLog
