'''
Brownie entry point:

    brownie run liquidator main <account[,account...]> <chain>
'''
from loan_liquidator.bot import main as run_main


def main(acc_names, chain_name):
    run_main(acc_names, chain_name)
