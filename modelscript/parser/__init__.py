from .parser import parse_modelscript
