from sqlalchemy import JSON, Numeric
from sqlalchemy.dialects.postgresql import JSONB

JSON_TYPE = JSONB().with_variant(JSON, "sqlite")

# Money is fixed-point everywhere; never store amounts as binary float.
MONEY = Numeric(18, 2, asdecimal=True)
PERCENTAGE = Numeric(5, 2, asdecimal=True)
