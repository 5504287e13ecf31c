from .catalog import Product
from .customers import Customer
from .invoices import Invoice, InvoiceItem
from .payments import Payment
from .documents import DocumentSequence, LedgerEvent
from .auth import User, Device
