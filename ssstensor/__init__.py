from .sssten import SSSTensor
from .contraction import *
from .dense import dense_contract
from .utils import reduce_dictionaries, reduce_edges
from . import utils
