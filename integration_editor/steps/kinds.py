"""Step kind ids known to the editor.

Only some of them are registered; the rest are reserved ids that saved integrations
may already carry.
"""

DATA_MAPPER = "mapper"
BASIC_FILTER = "rule-filter"
ADVANCED_FILTER = "filter"
STORE_DATA = "storeData"
SET_DATA = "setData"
CALL_ROUTE = "callRoute"
CONDITIONAL_PROCESSING = "conditionalProcessing"
SPLIT = "split"
LOG = "log"

RESERVED_KINDS = (STORE_DATA, SET_DATA, CALL_ROUTE, CONDITIONAL_PROCESSING, SPLIT, LOG)
