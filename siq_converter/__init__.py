__version__ = '0.1.0'

from siq_converter.converter import convert_siq_from_file, convert_siq_from_url, SIQConverter
from siq_converter.errors import ConversionError
from siq_converter.models import Pack

__all__ = ['convert_siq_from_file', 'convert_siq_from_url', 'SIQConverter', 'ConversionError', 'Pack']
