__author__ = 'Mobile Connect contributors'
__version__ = '1.0.0'
