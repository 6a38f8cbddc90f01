from synapses.ring_buffer import RingBuffer
from synapses.alpha_synapse import alpha_conductance, alpha_normalization
