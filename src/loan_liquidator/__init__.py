'''
Liquidation bot for under-collateralized loans on a lending protocol.
'''

__version__ = '0.1.0'
