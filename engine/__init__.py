# engine/__init__.py

# Import from the submodules directly, e.g.
#   from engine.simulator import RetirementSimulator, generate_projections
#   from engine.dependency_graph import DependencyGraph
# utils.tax_utils imports engine.rmd_tables, so nothing is imported eagerly here.
