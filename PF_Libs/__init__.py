"""
PF_Libs - Pixel Filter Library Modules

Selection-masked pixel filters for raster editing, organized into
specialized sub-packages:

- FilterLib: Filter kinds, parameter records and filter algorithms
- SelectionLib: Selection masks, display/pixel mapping, coverage blending
- DispatchLib: Dispatcher, result cache, scheduler and session entry point
"""

__version__ = "0.1.0"
