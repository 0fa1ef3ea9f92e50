# config/projection_assumptions.py
# Engine constants. Changing the convergence values requires re-checking the
# solver convergence tests in tests/test_year_solver.py.

# Fixed-point tax iteration
tax_convergence_threshold = 100.0   # dollars between successive tax estimates
max_tax_iterations = 10             # pass cap per projected year

# Healthcare
medicare_start_age = 65

# Required Minimum Distributions (SECURE 2.0)
rmd_start_age = 73

# Withdrawal priority after the RMD is taken from the IRA
default_withdrawal_order = ("after_tax", "ira", "roth")
account_kinds = ("after_tax", "ira", "roth")

# Filing status before / after the survivor event
joint_filing_status = "married_filing_jointly"
survivor_filing_status = "single"

# Default discount rate for present values
default_discount_rate = 0.03
